from aesthetic_atoms.cli import main

main()
