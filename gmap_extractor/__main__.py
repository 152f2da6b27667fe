from gmap_extractor.main import main

main()
