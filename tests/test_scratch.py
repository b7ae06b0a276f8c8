# File: tests/test_scratch.py
import threading

from media_scout.extractor.scratch import ScratchBufferManager


def test_reset_truncates_and_rewinds(scratch):
    buf = scratch.reset()
    buf.write(b"previous run output")
    again = scratch.reset()
    assert again is buf
    assert again.tell() == 0
    assert again.read() == b""


def test_get_keeps_contents(scratch):
    scratch.reset().write(b"payload")
    buf = scratch.get()
    buf.seek(0)
    assert buf.read() == b"payload"


def test_release_closes_and_get_reopens(scratch):
    first = scratch.get()
    scratch.release()
    assert first.closed
    assert not scratch.has_open_buffer()
    second = scratch.get()
    assert second is not first
    assert not second.closed


def test_release_without_buffer_does_not_open_one(tmp_path):
    manager = ScratchBufferManager(directory=tmp_path)
    manager.release()
    assert not manager.has_open_buffer()


def test_closed_elsewhere_is_replaced(scratch):
    first = scratch.get()
    first.close()
    assert not ScratchBufferManager.is_open(first)
    assert not scratch.get().closed


def test_scratch_file_is_anonymous(tmp_path):
    manager = ScratchBufferManager(directory=tmp_path)
    manager.get()
    assert list(tmp_path.iterdir()) == []
    manager.release()


def test_each_thread_gets_its_own_buffer(scratch):
    mine = scratch.get()
    theirs = {}

    def worker():
        buf = scratch.reset()
        buf.write(b"other worker")
        theirs["buf"] = buf
        scratch.release()

    t = threading.Thread(target=worker)
    t.start()
    t.join()

    assert theirs["buf"] is not mine
    assert not mine.closed
    mine.seek(0)
    assert mine.read() == b""
