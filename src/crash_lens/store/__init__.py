from crash_lens.store.files import DirectoryReportStore
from crash_lens.store.memory import InMemoryReportStore

__all__ = [
    "DirectoryReportStore",
    "InMemoryReportStore",
]
