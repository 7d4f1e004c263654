from trello_projects.cli.commands import cli

cli()
