"""Command line interface for the Trello projects cache."""

from trello_projects.cli.commands import cli

__all__ = ['cli']
