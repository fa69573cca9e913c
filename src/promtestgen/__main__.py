from promtestgen.cli.main import main

main()
