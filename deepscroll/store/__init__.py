from deepscroll.store.slice_store import FileSliceStore, MemorySliceStore, SliceStore

__all__ = ["FileSliceStore", "MemorySliceStore", "SliceStore"]
