#!/usr/bin/env python
"""
Script de démarrage du serveur Station de pompage.

Lance l'API FastAPI (débits, volumes journaliers, exports CSV, alertes) et la
surveillance périodique des niveaux.

Usage:
    python start_server.py
    python start_server.py --port 8000 --reload
    python start_server.py --interval-min 5 --channels-file canaux.json
"""

import argparse
import logging
import os
import subprocess
import sys

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


def server_env(interval_min=None, channels_file=None) -> dict:
    """Environnement du processus uvicorn (les options CLI priment sur .env)."""
    env = dict(os.environ)
    if interval_min is not None:
        env["MONITOR_INTERVAL_MIN"] = str(interval_min)
    if channels_file:
        env["STATION_CHANNELS_FILE"] = os.path.abspath(channels_file)
    return env


def build_command(host: str, port: int, reload: bool) -> list:
    cmd = ["uvicorn", "backend_app:app", "--host", host, "--port", str(port)]
    if reload:
        cmd.append("--reload")
    return cmd


def start_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False, interval_min=None, channels_file=None):
    """Démarre l'API avec uvicorn dans un sous-processus."""
    env = server_env(interval_min, channels_file)
    interval = env.get("MONITOR_INTERVAL_MIN", "2")

    logging.info("=" * 80)
    logging.info("💧 STATION DE POMPAGE - Serveur")
    logging.info("=" * 80)
    logging.info(f"📚 API Docs: http://localhost:{port}/docs")
    logging.info(f"📊 Canaux: http://localhost:{port}/api/channels")
    logging.info(f"🚨 Alertes: http://localhost:{port}/api/alerts (surveillance toutes les {interval} min)")
    if env.get("STATION_CHANNELS_FILE"):
        logging.info(f"📁 Catalogue des canaux: {env['STATION_CHANNELS_FILE']}")

    cmd = build_command(host, port, reload)
    logging.info(f"🚀 Exécution: {' '.join(cmd)}")

    try:
        subprocess.run(cmd, check=True, env=env)
    except KeyboardInterrupt:
        logging.info("🛑 Serveur arrêté par l'utilisateur")
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        logging.error(f"❌ Erreur au démarrage du serveur: {e}")
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description="Démarre le serveur Station de pompage")
    parser.add_argument("--host", default="0.0.0.0", help="Adresse d'écoute (défaut: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8000, help="Port du serveur (défaut: 8000)")
    parser.add_argument("--reload", action="store_true", help="Rechargement automatique sur modification")
    parser.add_argument("--interval-min", type=float, default=None, help="Cadence de surveillance des alertes")
    parser.add_argument("--channels-file", default=None, help="Catalogue JSON des canaux")
    args = parser.parse_args()

    start_server(
        host=args.host,
        port=args.port,
        reload=args.reload,
        interval_min=args.interval_min,
        channels_file=args.channels_file,
    )


if __name__ == "__main__":
    main()
