from __future__ import annotations

import asyncio
import contextlib

import app as app_module


def test_purge_loop_keeps_running_after_unexpected_errors(monkeypatch) -> None:
    passes = []

    def failing_purge() -> int:
        passes.append(1)
        raise RuntimeError("disk full")

    monkeypatch.setattr(app_module, "purge_expired_codes", failing_purge)

    async def run() -> bool:
        task = asyncio.create_task(app_module._purge_loop(0))
        await asyncio.sleep(0.2)
        alive = not task.done()
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        return alive

    assert asyncio.run(run()) is True
    assert len(passes) >= 2
