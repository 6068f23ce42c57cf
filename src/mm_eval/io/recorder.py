# io/recorder.py
import json
import sys
from dataclasses import asdict
from typing import Protocol


class Sink(Protocol):
    def write(self, rec) -> None: ...

    def close(self) -> None: ...


class JsonlSink:
    def __init__(self, fp=sys.stdout, *, owned: bool = False):
        self.fp = fp
        self.owned = owned  # close fp along with the sink

    def write(self, rec) -> None:
        self.fp.write(json.dumps(asdict(rec)) + "\n")
        self.fp.flush()

    def close(self) -> None:
        if self.owned and not self.fp.closed:
            self.fp.close()


class MemorySink:
    def __init__(self):
        self.records: list = []

    def write(self, rec) -> None:
        self.records.append(rec)

    def close(self) -> None:
        pass


class Recorder:
    """Fan per-trajectory score records out to one or more sinks."""

    def __init__(self, *sinks: Sink):
        self.sinks = sinks or (JsonlSink(),)

    def emit(self, rec):
        for s in self.sinks:
            s.write(rec)

    def close(self):
        for s in self.sinks:
            s.close()
