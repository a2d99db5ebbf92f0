from .bus import JobStatusReader, ProgressEventBus, Subscription

__all__ = ["JobStatusReader", "ProgressEventBus", "Subscription"]
