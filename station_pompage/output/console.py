"""Rendu console des résultats (rich/plain/json)."""

import json
from typing import Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from station_pompage.analysis.flow import level_metrics
from station_pompage.core.models import AlertState, ChannelConfig, FlowResult
from station_pompage.output.formatters import format_number


def _round(value: Optional[float], decimals: int) -> Optional[float]:
    return None if value is None else round(value, decimals)


def flow_summary(channel: ChannelConfig, result: FlowResult, daily_limit: int = 31) -> Dict:
    """Résumé sérialisable d'un calcul de débits."""
    last = result.processed[-1] if result.processed else None
    levels = level_metrics(result.processed)
    return {
        "channel": {"id": channel.id, "name": channel.name},
        "n_samples": len(result.processed),
        "period": {
            "start": str(result.processed[0].date) if result.processed else None,
            "end": str(last.date) if last else None,
        },
        "current_level_m": _round(levels["current"], 3),
        "average_level_m": _round(levels["average"], 3),
        "max_level_m": _round(levels["max"], 3),
        "flow_enabled": channel.can_derive_flow,
        "filtering": channel.filtering_active,
        "average_q_entree_m3h": round(result.average_q_entree, 2),
        "total_q_sortie_m3": round(result.total_q_sortie, 2),
        "volume_index_m3": round(result.volume_index, 2),
        "daily_volumes": [
            {"date": d.date.isoformat(), "volume_m3": round(d.volume, 2)} for d in result.daily_volumes[-daily_limit:]
        ],
        "pump_flow_m3h": round(result.pump_flow[-1].total, 2) if result.pump_flow else None,
    }


def print_flow_summary(channel: ChannelConfig, result: FlowResult, console_format: str = "rich") -> None:
    """Affiche le résumé des débits d'un canal.

    Args:
        channel: Configuration du canal
        result: Résultat de ``derive_flows``
        console_format: Format de sortie ("rich", "plain", "json")
    """
    summary = flow_summary(channel, result)

    if console_format == "json":
        print(json.dumps(summary, ensure_ascii=False, indent=2))
        return

    if console_format == "rich":
        _print_rich_flow(summary)
        return

    _print_plain_flow(summary)


def _print_rich_flow(summary: Dict) -> None:
    console = Console()
    console.rule(f"{summary['channel']['name']} ({summary['channel']['id']})")
    period = summary["period"]
    console.print(
        Panel(
            f"Période: {period['start'] or '—'} → {period['end'] or '—'}\n"
            f"Échantillons: {summary['n_samples']} | Filtrage: {'oui' if summary['filtering'] else 'non'}",
            title="Données",
        )
    )

    t = Table(show_header=True, header_style="bold")
    t.add_column("Métrique")
    t.add_column("Valeur", justify="right")
    t.add_row("Niveau actuel (m)", format_number(summary["current_level_m"], 3))
    t.add_row("Niveau moyen (m)", format_number(summary["average_level_m"], 3))
    t.add_row("Niveau max (m)", format_number(summary["max_level_m"], 3))
    if summary["flow_enabled"]:
        t.add_row("Débit entrée moyen (m³/h)", format_number(summary["average_q_entree_m3h"], 2))
        t.add_row("Volume sorti cumulé (m³)", format_number(summary["volume_index_m3"], 2))
    else:
        t.add_row("Calcul des débits", "[dim]désactivé[/]")
    if summary["pump_flow_m3h"] is not None:
        t.add_row("Débit pompes (m³/h)", format_number(summary["pump_flow_m3h"], 2))
    console.print(t)

    if summary["daily_volumes"]:
        d = Table(title="Volumes journaliers", show_header=True, header_style="bold")
        d.add_column("Date")
        d.add_column("Volume (m³)", justify="right")
        for row in summary["daily_volumes"]:
            d.add_row(row["date"], format_number(row["volume_m3"], 2))
        console.print(d)


def _print_plain_flow(summary: Dict) -> None:
    print(f"=== {summary['channel']['name']} ({summary['channel']['id']}) ===")
    print(f"Période: {summary['period']['start']} → {summary['period']['end']} ({summary['n_samples']} points)")
    print(
        f"Niveau (m): actuel {format_number(summary['current_level_m'], 3)}"
        f" | moyen {format_number(summary['average_level_m'], 3)}"
        f" | max {format_number(summary['max_level_m'], 3)}"
    )
    if summary["flow_enabled"]:
        print(f"Débit entrée moyen (m³/h): {format_number(summary['average_q_entree_m3h'], 2)}")
        print(f"Volume sorti cumulé (m³): {format_number(summary['volume_index_m3'], 2)}")
    for row in summary["daily_volumes"]:
        print(f"  - {row['date']}: {format_number(row['volume_m3'], 2)} m³")


def print_alert_state(
    channel: ChannelConfig, state: AlertState, level: Optional[float], console_format: str = "rich"
) -> None:
    """Affiche l'état d'alerte courant d'un canal."""
    summary = {
        "channel": channel.name,
        "level_m": level,
        "NTH": state.is_nth,
        "NTB": state.is_ntb,
        "overflow": state.is_overflowing,
        "overflow_count": state.overflow_count,
        "overflow_duration_min": state.overflow_duration,
    }
    if console_format == "json":
        print(json.dumps(summary, ensure_ascii=False))
        return
    if console_format == "rich":
        active = [k for k in ("NTH", "NTB", "overflow") if summary[k]]
        style = "bold red" if state.is_overflowing else ("bold yellow" if active else "bold green")
        label = ", ".join(active) if active else "NORMAL"
        Console().print(
            f"[{style}]{channel.name}[/] niveau={format_number(level, 3)} m | état: [{style}]{label}[/] "
            f"| débordements={state.overflow_count} ({state.overflow_duration:g} min)"
        )
        return
    print(
        f"{channel.name}: niveau={format_number(level, 3)} NTH={state.is_nth} NTB={state.is_ntb} "
        f"débordement={state.is_overflowing} ({state.overflow_count}, {state.overflow_duration:g} min)"
    )
