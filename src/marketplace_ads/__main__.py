from marketplace_ads import cli

cli.app()
