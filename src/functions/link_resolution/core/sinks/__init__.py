from .progress_sink import AccumulatingProgressSink, CompositeProgressSink, ProgressSink, QueueProgressSink

__all__ = [
    "AccumulatingProgressSink",
    "CompositeProgressSink",
    "ProgressSink",
    "QueueProgressSink",
]
