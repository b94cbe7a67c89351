import json

import pytest

from od_get.errors import FilesystemError
from od_get.models import Complete, CrawledDir, DirMeta, File, FileMeta, NotStarted, Partial
from od_get.state import DoneSet, StateStore


def make_root():
    return CrawledDir(DirMeta("http://od.test/pub/", "/pub"), [
        File(FileMeta("http://od.test/pub/a.txt", "a.txt", size="5")),
    ])


def test_missing_file_starts_fresh(tmp_path):
    state = StateStore.load(str(tmp_path / "nope.json"))

    assert isinstance(state.crawling_state, NotStarted)
    assert len(state.downloaded_urls) == 0


@pytest.mark.parametrize("content", [
    "make-new",
    "{not json",
    "",
    "[]",
    '{"crawling_state": "Sideways", "downloaded_urls": []}',
    '{"crawling_state": "None", "downloaded_urls": [1, 2]}',
    '{"downloaded_urls": []}',
])
def test_unreadable_file_starts_fresh(tmp_path, content):
    path = tmp_path / "state.json"
    path.write_text(content)

    state = StateStore.load(str(path))

    assert isinstance(state.crawling_state, NotStarted)
    assert list(state.downloaded_urls) == []


def test_save_and_load(tmp_path):
    path = str(tmp_path / "state.json")
    state = StateStore(Complete(make_root()), ["http://od.test/pub/b", "http://od.test/pub/a"])

    state.save(path)
    loaded = StateStore.load(path)

    assert loaded.crawling_state == state.crawling_state
    assert list(loaded.downloaded_urls) == ["http://od.test/pub/b", "http://od.test/pub/a"]
    assert loaded.last_modified == state.last_modified != ""
    assert loaded.is_complete
    assert loaded.root == make_root()


def test_file_layout(tmp_path):
    path = tmp_path / "state.json"
    StateStore(Partial(make_root()), ["http://od.test/pub/a.txt"]).save(str(path))

    text = path.read_text()
    data = json.loads(text)

    assert "\n  " in text
    assert set(data) == {"crawling_state", "downloaded_urls", "last_modified"}
    assert list(data["crawling_state"]) == ["Partial"]
    assert data["downloaded_urls"] == ["http://od.test/pub/a.txt"]


def test_fresh_store_saves_none_phase(tmp_path):
    path = tmp_path / "state.json"
    StateStore().save(str(path))

    assert json.loads(path.read_text())["crawling_state"] == "None"


def test_save_failure_is_filesystem_error(tmp_path):
    with pytest.raises(FilesystemError):
        StateStore().save(str(tmp_path))


def test_done_set_keeps_insertion_order():
    done = DoneSet(["c", "a"])
    done.add("b")
    done.add("a")

    assert list(done) == ["c", "a", "b"]
    assert len(done) == 3
    assert "b" in done
    assert "z" not in done


def test_root_absent_until_crawled():
    assert StateStore().root is None
    assert not StateStore().is_complete
