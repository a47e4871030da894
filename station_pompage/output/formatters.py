"""Fonctions auxiliaires de formatage pour l'affichage et l'export."""

from typing import Any, Optional

import pandas as pd


def format_number(value: Any, decimals: int = 3) -> str:
    """Formate un nombre avec N décimales, retourne '—' s'il n'est pas valide.

    Args:
        value: Valeur à formater
        decimals: Nombre de décimales

    Returns:
        Chaîne formatée ou '—'

    Example:
        >>> format_number(1.2345, 2)
        '1.23'
        >>> format_number(None, 2)
        '—'
    """
    try:
        return f"{float(value):.{decimals}f}"
    except (ValueError, TypeError):
        return "—"


def format_optional(value: Optional[float], decimals: int = 3) -> str:
    """Comme ``format_number`` mais chaîne vide si la valeur est absente."""
    return "" if value is None else f"{float(value):.{decimals}f}"


def format_date(ts: Any) -> str:
    """``dd/mm/yyyy``.

    Example:
        >>> format_date(pd.Timestamp("2025-03-07 08:05:09"))
        '07/03/2025'
    """
    return pd.Timestamp(ts).strftime("%d/%m/%Y")


def format_time(ts: Any) -> str:
    return pd.Timestamp(ts).strftime("%H:%M:%S")
