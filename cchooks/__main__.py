from cchooks.cli.main import main


main()
