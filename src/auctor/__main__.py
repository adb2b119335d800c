from auctor.cli.auctor_cli import main

main()
