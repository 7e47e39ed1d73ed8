import asyncio

from src.functions.link_resolution.core.contracts import Link, ProgressEvent, Severity
from src.functions.link_resolution.core.sinks import (
    AccumulatingProgressSink,
    CompositeProgressSink,
    ProgressSink,
    QueueProgressSink,
)


def _event(link_id, message, status=None):
    return ProgressEvent(link_id=link_id, message=message, status=status)


def test_queue_sink_pushes_events_in_order():
    async def _run():
        queue = asyncio.Queue()
        sink = QueueProgressSink(queue)
        await sink.emit(_event("1", "Analyzing link..."))
        await sink.emit(_event("1", "Finished", status="finished"))
        return [queue.get_nowait(), queue.get_nowait()]

    first, second = asyncio.run(_run())

    assert first.message == "Analyzing link..."
    assert second.is_finished


def test_accumulating_sink_groups_by_link():
    sink = AccumulatingProgressSink()

    async def _run():
        await sink.emit(_event("a", "Analyzing link..."))
        await sink.emit(_event("b", "Analyzing link..."))
        await sink.emit(_event("a", "Finished", status="finished"))

    asyncio.run(_run())

    assert [event.message for event in sink.events_for("a")] == ["Analyzing link...", "Finished"]
    assert sink.finished("a")
    assert not sink.finished("b")
    assert not sink.finished("missing")
    assert sink.events_for("missing") == []
    assert len(sink) == 3


def test_composite_sink_forwards_to_every_sink():
    first, second = AccumulatingProgressSink(), AccumulatingProgressSink()

    asyncio.run(CompositeProgressSink(first, second).emit(_event("1", "Solving HBLinks...")))

    assert len(first) == len(second) == 1


def test_sinks_satisfy_protocol():
    assert isinstance(AccumulatingProgressSink(), ProgressSink)
    assert isinstance(QueueProgressSink(asyncio.Queue()), ProgressSink)
    assert isinstance(CompositeProgressSink(), ProgressSink)


def test_event_wire_form_omits_unset_keys():
    plain = ProgressEvent(link_id="7", message="Solving HBLinks...")
    done = ProgressEvent(
        link_id="7",
        message="Completed",
        severity=Severity.SUCCESS,
        final_url="https://fsl.example/7.mkv",
        status="done",
    )

    assert plain.to_dict() == {"link_id": "7", "message": "Solving HBLinks...", "severity": "info"}
    assert done.to_dict() == {
        "link_id": "7",
        "message": "Completed",
        "severity": "success",
        "final_url": "https://fsl.example/7.mkv",
        "status": "done",
    }


def test_link_records():
    link = Link(id=3, url=" https://hblinks.pro/3 ", name="1080p")

    assert link.id == "3"
    assert link.url == "https://hblinks.pro/3"
    assert link.placeholder_record() == {
        "id": "3",
        "name": "1080p",
        "link": "https://hblinks.pro/3",
        "status": "processing",
        "logs": [],
    }

    link.url = "https://hubcloud.one/drive/3"
    link.error_message = "HubCloud error: busy"
    record = link.to_record()
    assert record["link"] == "https://hblinks.pro/3"
    assert record["status"] == "pending"
    assert record["error"] == "HubCloud error: busy"
