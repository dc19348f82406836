from ragpack.cli import main

main()
