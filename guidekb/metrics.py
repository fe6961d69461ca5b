"""Load trace: the steps a corpus load took and the flags it ended with."""

import json
import time
from pathlib import Path


class Metrics:
    """Collects what happened during one load.

    Pass ``path`` to append the finalized trace as one JSON line.
    """

    def __init__(self, path=None):
        self.path = Path(path) if path else None
        self.data = {'started_at': time.time(), 'steps': [], 'flags': {}}

    def step(self, name, ok=True, extra=None):
        self.data['steps'].append({'name': name, 'ok': ok, 'extra': extra or {}})

    def flag(self, key, val):
        self.data['flags'][key] = val

    def finalize(self):
        """Stamp the duration; write the trace when a path was given (may raise OSError)."""
        self.data['duration_sec'] = round(time.time() - self.data['started_at'], 3)
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open('a', encoding='utf-8') as f:
                f.write(json.dumps(self.data, ensure_ascii=False) + '\n')
        return self.data
