import pytest

from livehub.document import LiveDocument
from livehub.hub import LiveHubEngine


@pytest.fixture
def workspace(tmp_path):
    (tmp_path / "main.qml").write_text("Item {}")
    (tmp_path / ".hidden").write_text("x")
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "child.qml").write_text("Item {}")
    return tmp_path


def _recorder(hub):
    events = []
    hub.begin_publish_workspace.connect(lambda: events.append(("begin",)))
    hub.end_publish_workspace.connect(lambda: events.append(("end",)))
    hub.publish_file.connect(lambda d: events.append(("publish", d)))
    hub.file_changed.connect(lambda d: events.append(("changed", d)))
    hub.activate_document.connect(lambda d: events.append(("activate", d)))
    return events


def test_set_workspace_emits(workspace):
    hub = LiveHubEngine()
    seen = []
    hub.workspace_changed.connect(seen.append)
    hub.workspace = workspace
    assert seen == [str(workspace)]
    assert hub.workspace == str(workspace)


def test_active_path_emits_activate():
    hub = LiveHubEngine()
    events = _recorder(hub)
    doc = LiveDocument("main.qml")
    hub.active_path = doc
    assert hub.active_path == doc
    assert events == [("activate", doc)]


def test_publish_inactive_does_nothing(workspace):
    hub = LiveHubEngine()
    hub.workspace = workspace
    events = _recorder(hub)
    hub.publish_workspace()
    assert events == []


def test_publish_workspace_order(workspace):
    hub = LiveHubEngine()
    hub.workspace = workspace
    hub.file_publishing_active = True
    events = _recorder(hub)
    hub.publish_workspace()
    assert events[0] == ("begin",)
    assert events[-1] == ("end",)
    published = [e[1].relative_file_path for e in events[1:-1]]
    assert published == ["main.qml", "sub/child.qml"]


def test_directories_changed_publishes_changes(workspace):
    hub = LiveHubEngine()
    hub.workspace = workspace
    hub.file_publishing_active = True
    hub.active_path = LiveDocument("main.qml")
    events = _recorder(hub)
    hub.directories_changed([workspace / "sub"])
    assert events == [
        ("changed", LiveDocument("sub/child.qml")),
        ("activate", LiveDocument("main.qml")),
    ]


def test_directories_changed_inactive_only_activates(workspace):
    hub = LiveHubEngine()
    hub.workspace = workspace
    events = _recorder(hub)
    hub.directories_changed([workspace])
    assert events == [("activate", None)]