from pixelveil.cli import main

main()
