"""Shared test helpers."""

import asyncio
import json
from concurrent.futures import Future
from pathlib import Path

WORKSPACE = "/home/wiz/projects/my.app"


def make_line(**fields) -> str:
    """One JSONL session log line."""
    return json.dumps(fields)


def assistant_line(content=None, usage=None, model="claude-opus-4-5", **extra) -> str:
    message = {"role": "assistant", "model": model, "content": content or []}
    if usage is not None:
        message["usage"] = usage
    return make_line(type="assistant", message=message, **extra)


def tool_use_block(tool_id: str, name: str = "Bash", **tool_input) -> dict:
    return {"type": "tool_use", "id": tool_id, "name": name, "input": tool_input}


def tool_result_line(*tool_ids: str) -> str:
    content = [{"type": "tool_result", "tool_use_id": tid, "content": "ok"} for tid in tool_ids]
    return make_line(type="user", message={"role": "user", "content": content})


def append_lines(path: Path, lines: list[str]):
    with open(path, "a", encoding="utf-8") as f:
        for line in lines:
            f.write(line + "\n")


def write_lock(ide_dir: Path, name: str, pid: int, workspace: str = WORKSPACE, **extra) -> Path:
    """Write an ide/*.lock session descriptor."""
    descriptor = {"pid": pid, "workspaceFolders": [workspace], "ideName": "VS Code", **extra}
    path = ide_dir / f"{name}.lock"
    path.write_text(json.dumps(descriptor))
    return path


class SyncRunner:
    """Runs each submitted coroutine to completion immediately."""

    def __init__(self):
        self.submitted = 0

    def submit(self, coro, on_done):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(asyncio.run(coro))
        except Exception as e:
            future.set_exception(e)
        on_done(future)
        return future


class DeferredRunner:
    """Holds submitted coroutines until the test completes them."""

    def __init__(self):
        self.pending = []

    def submit(self, coro, on_done):
        future = Future()
        self.pending.append((coro, on_done, future))
        return future

    def complete_next(self):
        coro, on_done, future = self.pending.pop(0)
        try:
            future.set_result(asyncio.run(coro))
        except Exception as e:
            future.set_exception(e)
        on_done(future)

    def close(self):
        for coro, _, _ in self.pending:
            coro.close()
        self.pending.clear()


class MemoryCredentialStore:
    """In-memory stand-in for the credential collaborator."""

    def __init__(self, **values):
        self.values = dict(values)

    def get(self, name):
        return self.values.get(name) or None

    def set(self, name, value):
        if not value:
            return self.delete(name)
        self.values[name] = value
        return True

    def delete(self, name):
        self.values.pop(name, None)
        return True


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds
