import argparse
import asyncio
import json
import sys
from pathlib import Path

from nvrmon.adapters.appliance.producers import JobLauncher, LaunchError
from nvrmon.adapters.appliance.status_client import JobStatusClient
from nvrmon.config.settings import settings
from nvrmon.core.logging import setup_logging
from nvrmon.core.monitor import ProgressMonitor
from nvrmon.core.state import Outcome
from nvrmon.core.store import SessionStore, SqliteSessionStore
from nvrmon.handlers.console import ConsoleSink


def build_monitor(sink, store: SessionStore | None = None, client: JobStatusClient | None = None):
    """La aplicación construye su monitor y lo pasa a quien lance jobs."""
    store = store or SqliteSessionStore(settings.SESSION_DB_PATH)
    client = client or JobStatusClient()
    return ProgressMonitor(client, store, sink), client


def _exit_code(sink: ConsoleSink) -> int:
    if sink.final is not None and sink.final.outcome is Outcome.SUCCESS:
        return 0
    return 1


async def _watch(job_id: str | None) -> int:
    sink = ConsoleSink()
    monitor, client = build_monitor(sink)
    try:
        if job_id:
            await monitor.start(job_id)
        elif not await monitor.resume_if_present():
            print("[i] No hay ningún job en seguimiento.")
            return 0
        await sink.done.wait()
        return _exit_code(sink)
    finally:
        # stop() y no dismiss(): tras Ctrl+C `nvrmon resume` continúa el mismo job
        monitor.stop()
        await client.aclose()


def _launch(args) -> str:
    launcher = JobLauncher()
    try:
        if args.cmd == "restart-camera":
            return launcher.restart_camera()
        if args.cmd == "backup":
            return launcher.execute_backup(args.config_id)
        if args.cmd == "download":
            return launcher.start_download(json.loads(args.recording))
        recordings = json.loads(Path(args.file).read_text(encoding="utf-8"))
        return launcher.start_batch_download(recordings)
    finally:
        launcher.close()


def main(argv=None):
    parser = argparse.ArgumentParser("nvrmon")
    sub = parser.add_subparsers(dest="cmd")

    p = sub.add_parser("watch", help="Sigue el progreso de un job")
    p.add_argument("job_id")
    sub.add_parser("resume", help="Retoma el job guardado en la sesión")
    sub.add_parser("dismiss", help="Olvida el job guardado en la sesión")
    sub.add_parser("restart-camera", help="Reinicia la cámara y sigue el job")
    p = sub.add_parser("backup", help="Ejecuta una configuración de backup")
    p.add_argument("config_id", type=int)
    p = sub.add_parser("download", help="Descarga una grabación (objeto JSON)")
    p.add_argument("recording")
    p = sub.add_parser("batch-download", help="Descarga en lote (fichero con lista JSON)")
    p.add_argument("file")

    args = parser.parse_args(argv)

    if args.cmd is None:
        parser.print_help()
        return 2

    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)

    if args.cmd == "dismiss":
        monitor, _ = build_monitor(ConsoleSink())
        monitor.dismiss()
        print("[i] Sesión limpiada.")
        return 0

    try:
        if args.cmd == "watch":
            job_id = args.job_id
        elif args.cmd == "resume":
            job_id = None
        else:
            job_id = _launch(args)
            print(f"[i] Job iniciado: {job_id}")
        return asyncio.run(_watch(job_id))
    except KeyboardInterrupt:
        print("\n[i] Seguimiento detenido; usa `nvrmon resume` para continuar.")
        return 0
    except (LaunchError, ValueError, OSError) as e:
        print(f"[!] {e}")
        return 1
    except Exception as e:
        print(f"[!] Error: {e!r}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
