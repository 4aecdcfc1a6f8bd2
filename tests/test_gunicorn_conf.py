import os
import runpy
from types import SimpleNamespace

CONF_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "gunicorn.conf.py")


class _Log:
    def __init__(self):
        self.warnings = []

    def warning(self, msg, *args):
        self.warnings.append(msg % args)


def test_single_worker_even_with_web_concurrency(monkeypatch):
    monkeypatch.setenv("WEB_CONCURRENCY", "4")

    conf = runpy.run_path(CONF_PATH)

    assert conf["workers"] == 1
    assert conf["worker_class"] == "gthread"


def test_on_starting_forces_one_worker():
    conf = runpy.run_path(CONF_PATH)
    server = SimpleNamespace(num_workers=3, log=_Log())

    conf["on_starting"](server)

    assert server.num_workers == 1
    assert len(server.log.warnings) == 1
