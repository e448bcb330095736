from shipforge.cli import main

main()
