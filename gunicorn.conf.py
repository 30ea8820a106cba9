"""Gunicorn config for the fleet dashboard."""
import threading
import time
import urllib.request


def post_worker_init(worker):
    """Refetch every collection once the worker is serving.

    Each worker keeps its own in-memory copy of the Supabase tables, so a fresh
    worker asks itself to reload instead of serving whatever was loaded at
    import time.
    """
    def _reload():
        time.sleep(3)  # wait for server to be ready
        try:
            port = worker.cfg.bind[0].split(":")[-1] if worker.cfg.bind else "8000"
            with urllib.request.urlopen(f"http://127.0.0.1:{port}/api/reload", timeout=30) as resp:
                worker.log.info("Reloaded fleet data from Supabase: %s", resp.read().decode())
        except OSError as e:
            worker.log.warning("Fleet data reload failed: %s", e)

    threading.Thread(target=_reload, daemon=True).start()
