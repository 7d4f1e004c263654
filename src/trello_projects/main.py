#!/usr/bin/env python3
"""Main entry point for Trello projects CLI."""

from trello_projects.cli.commands import cli

if __name__ == '__main__':
    cli()
