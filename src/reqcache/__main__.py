from reqcache.app import main

main()
