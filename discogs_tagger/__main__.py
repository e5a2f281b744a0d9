from discogs_tagger.main import main

main()
