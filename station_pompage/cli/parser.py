"""Parseur des arguments de ligne de commande."""

import argparse
from typing import Optional, Sequence


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse les arguments de la ligne de commande.

    Returns:
        Namespace avec la sous-commande (``command``) et ses options

    Example:
        >>> args = parse_args(["flows", "--channel", "2780154", "--start", "2025-01-01"])
        >>> args.command, args.channel
        ('flows', 2780154)
    """
    p = argparse.ArgumentParser(description="Stations de pompage: débits, volumes et alertes de niveau.")
    p.add_argument("--channels-file", default=None, help="Catalogue JSON des canaux (remplace le catalogue intégré)")
    p.add_argument(
        "--console-format",
        choices=["rich", "plain", "json"],
        default=None,
        help="Format de sortie console (défaut: CONSOLE_FORMAT ou rich)",
    )
    p.add_argument("--timeout", type=float, default=None, help="Timeout HTTP en secondes (défaut: aucun)")
    p.add_argument("-v", "--verbose", action="store_true", help="Journalisation DEBUG")

    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("channels", help="Liste les canaux configurés")

    flows = sub.add_parser("flows", help="Récupère une période et calcule débits et volumes")
    flows.add_argument("--channel", type=int, required=True, help="Identifiant du canal")
    flows.add_argument("--start", required=True, help="Début (ex: 2025-01-01 ou 2025-01-01T06:00)")
    flows.add_argument("--end", default=None, help="Fin (défaut: fin de journée du début)")
    flows.add_argument("--csv", default=None, help="Chemin de l'export CSV des échantillons")
    flows.add_argument("--daily-csv", default=None, help="Chemin de l'export CSV des volumes journaliers")

    monitor = sub.add_parser("monitor", help="Surveille les niveaux et envoie les alertes")
    monitor.add_argument("--interval-min", type=float, default=None, help="Cadence en minutes (défaut: 2)")
    monitor.add_argument("--once", action="store_true", help="Une seule passe puis sortie")

    return p.parse_args(argv)
