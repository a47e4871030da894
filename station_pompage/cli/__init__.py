"""Module cli: arguments de ligne de commande."""

from station_pompage.cli.parser import parse_args

__all__ = ["parse_args"]
