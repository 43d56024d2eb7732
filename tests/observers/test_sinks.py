import json
import logging

from clusterseed.observers.dispatcher import EventBus
from clusterseed.observers.events import StepSkipped, StepSucceeded, new_ctx
from clusterseed.observers.sinks import JsonFileObserver, LoggerObserver


class Boom:
    def notify(self, ev): raise RuntimeError("observer down")


class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)


def test_json_file_observer_appends_lines(tmp_path):
    path = tmp_path / "logs" / "run.jsonl"
    ob = JsonFileObserver(path)
    ob.notify(StepSucceeded(**new_ctx("nodes", "r1"), host="worker-node1", step="swap", duration_ms=7))
    ob.notify(StepSkipped(**new_ctx("nodes", "r1"), host="worker-node1", step="containerd", reason="already configured"))

    records = [json.loads(ln) for ln in path.read_text().splitlines()]
    assert [r["event"] for r in records] == ["StepSucceeded", "StepSkipped"]
    assert records[0]["duration_ms"] == 7
    assert records[1]["run_id"] == "r1"


def test_logger_observer_logs_at_debug(caplog):
    caplog.set_level(logging.DEBUG, logger="clusterseed")
    LoggerObserver(logging.getLogger("clusterseed")).notify(
        StepSkipped(**new_ctx("trust"), host="control-plane", step="sshpass", reason="already configured")
    )
    assert "[EVENT] trust StepSkipped control-plane/sshpass reason=already configured" in caplog.text


def test_failing_observer_does_not_stop_others():
    cap = Capture()
    bus = EventBus([Boom()])
    bus.subscribe(cap)
    bus.emit(StepSucceeded(**new_ctx("cluster"), host="control-plane", step="kubeadm-init", duration_ms=1))
    assert len(cap.events) == 1
