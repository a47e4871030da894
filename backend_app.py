import logging
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Optional

import pandas as pd
import requests
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response

from station_pompage.analysis import AlertMonitor, FlowCalculator, level_metrics
from station_pompage.core.channels import ChannelCatalog
from station_pompage.core.errors import RetrievalError
from station_pompage.core.models import ChannelConfig, ChannelData, FlowResult
from station_pompage.core.settings import Settings
from station_pompage.data import fetch_range, fetch_window
from station_pompage.data.loaders import fetch_latest
from station_pompage.main import resolve_period
from station_pompage.monitoring import poll_once
from station_pompage.notify import build_notifier
from station_pompage.output import daily_volumes_to_csv, processed_to_csv

# Configuration de journalisation basique pour l'API
logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Station de pompage - API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

STATIC_PATH = Path("web")

SETTINGS = Settings.from_env()
CATALOG = ChannelCatalog.from_file(SETTINGS.channels_file)
SESSION = requests.Session()
CALCULATOR = FlowCalculator()
MONITOR = AlertMonitor(CATALOG, build_notifier(SETTINGS), interval_minutes=SETTINGS.monitor_interval_min)


def fetch_period(channel_id: int, start: pd.Timestamp, end: pd.Timestamp) -> ChannelData:
    """Récupère une période; chaque requête HTTP de l'API a son propre jeton."""
    window = partial(fetch_window, session=SESSION, timeout=SETTINGS.http_timeout)
    return fetch_range(channel_id, start, end, fetch=window)


def fetch_last(channel_id: int) -> ChannelData:
    return fetch_latest(channel_id, session=SESSION, timeout=SETTINGS.http_timeout)


def channel_to_dict(ch: ChannelConfig) -> dict:
    return {
        "id": ch.id,
        "name": ch.name,
        "surface": ch.surface,
        "enableFlowCalculation": ch.enable_flow_calculation,
        "enableFiltering": ch.enable_filtering,
        "filterWindowSize": ch.filter_window_size,
        "usePumpFlow": ch.use_pump_flow,
        "pumps": [{"id": p.id, "flowRate": p.flow_rate} for p in ch.pumps],
        "nthThreshold": ch.nth_threshold,
        "ntbThreshold": ch.ntb_threshold,
        "overflowThreshold": ch.overflow_threshold,
        "emailGroup": ch.email_group,
    }


def flow_result_to_dict(result: FlowResult) -> dict:
    return {
        "processedData": [
            {
                "date": p.date.isoformat(),
                "level": p.level,
                "filteredLevel": p.filtered_level,
                "Q_entree": p.q_entree,
                "Q_sortie": p.q_sortie,
                "volumeIndex": p.volume_index,
            }
            for p in result.processed
        ],
        "levelMetrics": level_metrics(result.processed),
        "averageQEntree": result.average_q_entree,
        "totalQSortie": result.total_q_sortie,
        "volumeIndex": result.volume_index,
        "dailyVolumes": [{"date": d.date.isoformat(), "volume": d.volume} for d in result.daily_volumes],
        "pumpFlow": [
            {"date": s.date.isoformat(), "total": s.total, "perPump": {str(k): v for k, v in s.per_pump.items()}}
            for s in result.pump_flow
        ],
    }


def _compute(channel_id: int, start: Optional[str], end: Optional[str]):
    """Retourne ``(canal, données, résultat)`` ou une ``JSONResponse`` d'erreur."""
    channel = CATALOG.get(channel_id)
    if channel is None:
        return JSONResponse({"ok": False, "message": f"Canal inconnu: {channel_id}"}, status_code=404)
    try:
        t0, t1 = resolve_period(start or datetime.now().strftime("%Y-%m-%d"), end)
        if t1 < t0:
            raise ValueError("fin antérieure au début")
    except ValueError as e:
        return JSONResponse({"ok": False, "message": f"Période invalide: {e}"}, status_code=400)
    try:
        data = fetch_period(channel.id, t0, t1)
    except RetrievalError as e:
        logging.warning(f"Récupération impossible pour {channel.name}: {e}")
        return JSONResponse({"ok": False, "message": e.user_message}, status_code=502)
    return channel, data, CALCULATOR.compute_channel(data, channel)


@app.get("/api/channels")
def list_channels():
    """Liste les canaux configurés."""
    return {"channels": [channel_to_dict(c) for c in CATALOG.channels]}


@app.get("/api/channels/{channel_id}/flows")
def get_flows(channel_id: int, start: Optional[str] = Query(None), end: Optional[str] = Query(None)):
    """Débits, volume cumulé et volumes journaliers sur une période."""
    out = _compute(channel_id, start, end)
    if isinstance(out, JSONResponse):
        return out
    channel, data, result = out
    return {"ok": True, "channel": channel_to_dict(channel), "fields": data.fields, **flow_result_to_dict(result)}


@app.get("/api/channels/{channel_id}/daily-volumes")
def get_daily_volumes(channel_id: int, start: Optional[str] = Query(None), end: Optional[str] = Query(None)):
    out = _compute(channel_id, start, end)
    if isinstance(out, JSONResponse):
        return out
    _, _, result = out
    return {"ok": True, "dailyVolumes": [{"date": d.date.isoformat(), "volume": d.volume} for d in result.daily_volumes]}


@app.get("/api/channels/{channel_id}/export.csv")
def export_csv(
    channel_id: int,
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    kind: str = Query("samples"),
):
    """Export CSV (';') des échantillons (``kind=samples``) ou des volumes journaliers (``kind=daily``)."""
    out = _compute(channel_id, start, end)
    if isinstance(out, JSONResponse):
        return out
    channel, _, result = out
    if kind == "daily":
        content = daily_volumes_to_csv(result.daily_volumes)
        filename = f"volumes_journaliers_{channel.id}.csv"
    else:
        content = processed_to_csv(result.processed)
        filename = f"donnees_{channel.id}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/alerts")
def get_alerts():
    """État d'alerte courant des canaux surveillés."""
    alerts = []
    for ch in CATALOG.monitored():
        st = MONITOR.state(ch.id)
        alerts.append(
            {
                "channelId": ch.id,
                "name": ch.name,
                "isNTH": st.is_nth,
                "isNTB": st.is_ntb,
                "isOverflowing": st.is_overflowing,
                "overflowCount": st.overflow_count,
                "overflowDuration": st.overflow_duration,
            }
        )
    return {"alerts": alerts}


@app.get("/")
def index():
    file = STATIC_PATH / "index.html"
    if file.exists():
        return FileResponse(str(file))
    return JSONResponse({"ok": True, "message": "API Viva"})


# ============================================================================
# SURVEILLANCE PÉRIODIQUE DES ALERTES
# ============================================================================


def poll_alerts():
    """Passe de surveillance planifiée (dernier niveau de chaque canal)."""
    try:
        poll_once(CATALOG, MONITOR, fetch_last)
    except Exception as e:
        logging.exception(f"❌ Erreur lors de la surveillance des alertes: {e}")


scheduler = BackgroundScheduler()


@app.on_event("startup")
def start_scheduler():
    """Démarre la surveillance des alertes à la cadence configurée."""
    if not CATALOG.monitored():
        logging.info("Aucun canal avec seuils d'alerte: surveillance non planifiée")
        return
    scheduler.add_job(
        poll_alerts,
        trigger=IntervalTrigger(minutes=SETTINGS.monitor_interval_min),
        id="surveillance_alertes",
        name="Surveillance des niveaux",
        replace_existing=True,
        max_instances=1,
    )
    scheduler.start()
    logging.info(f"✅ Scheduler démarré - surveillance toutes les {SETTINGS.monitor_interval_min:g} min")


@app.on_event("shutdown")
def shutdown_scheduler():
    """Arrête le scheduler à l'arrêt de l'application."""
    if scheduler.running:
        scheduler.shutdown()
        logging.info("🛑 Scheduler arrêté")
