import os
import threading

import pytest
from PIL import Image

from livehub.adapters import IMAGE_VIEWER_URL, ContentAdapter, Feature, ImageAdapter
from livehub.document import LiveDocument
from livehub.node import CANNOT_DISPLAY, LiveNodeEngine, WorkspaceOption


class FakeWindow:
    def __init__(self, width=320, height=240):
        self.width = width
        self.height = height


class RecordingLoader:
    def __init__(self, result=None, error=None):
        self.result = result if result is not None else FakeWindow()
        self.error = error
        self.calls = []

    def __call__(self, path, context):
        self.calls.append(path)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def workspace(tmp_path):
    (tmp_path / "main.qml").write_text("Item {}\n")
    (tmp_path / "notes.txt").write_text("hello\n")
    return tmp_path


def collect(signal):
    seen = []
    signal.connect(lambda *args: seen.append(args))
    return seen


def test_set_workspace_emits_absolute_path(workspace):
    node = LiveNodeEngine()
    seen = collect(node.workspace_changed)
    node.set_workspace(workspace)
    assert seen == [(os.path.abspath(workspace),)]
    assert node.workspace == os.path.abspath(workspace)


def test_load_qml_document_uses_loader(workspace):
    window = FakeWindow(640, 480)
    loader = RecordingLoader(window)
    node = LiveNodeEngine(loader)
    node.set_workspace(workspace)
    loaded = collect(node.document_loaded)
    windows = collect(node.active_window_changed)

    node.load_document(LiveDocument("main.qml"))

    assert loader.calls == [str(workspace / "main.qml")]
    assert loaded == [()]
    assert windows == [(window,)]
    assert node.active_window is window
    assert node.runtime.screen_width == 640
    assert node.runtime.screen_height == 480


def test_active_document_changed_only_on_change(workspace):
    node = LiveNodeEngine(RecordingLoader())
    node.set_workspace(workspace)
    changes = collect(node.active_document_changed)
    doc = LiveDocument("main.qml")
    node.load_document(doc)
    node.load_document(doc)
    assert changes == [(doc,)]
    assert node.active_document == doc


def test_loader_errors_are_logged(workspace):
    node = LiveNodeEngine(RecordingLoader(error=RuntimeError("syntax error")))
    node.set_workspace(workspace)
    errors = collect(node.log_errors)
    node.load_document(LiveDocument("main.qml"))
    assert [e["description"] for (batch,) in errors for e in batch] == ["syntax error"]
    assert node.active_window is None


def test_unknown_file_type_is_reported(workspace):
    loader = RecordingLoader()
    node = LiveNodeEngine(loader)
    node.set_workspace(workspace)
    errors = collect(node.log_errors)
    node.load_document(LiveDocument("notes.txt"))
    assert errors[0][0][0]["description"] == CANNOT_DISPLAY
    assert loader.calls == []


def test_image_is_adapted(workspace):
    Image.new("RGB", (4, 4)).save(workspace / "pic.png")
    loader = RecordingLoader()
    node = LiveNodeEngine(loader)
    node.set_workspace(workspace)
    node.load_document(LiveDocument("pic.png"))
    assert loader.calls == [IMAGE_VIEWER_URL]
    assert node.context["imageViewerSource"] == str(workspace / "pic.png")
    assert isinstance(node.active_plugin, ImageAdapter)


def test_query_document_viewer_passes_through(workspace):
    node = LiveNodeEngine()
    path = str(workspace / "notes.txt")
    assert node.query_document_viewer(path) == path
    assert node.active_plugin is None


def test_extra_plugins_come_first(workspace):
    class Everything(ContentAdapter):
        def can_adapt(self, path):
            return True

        def adapt(self, path, context):
            return path + ".qml"

    plugin = Everything()
    node = LiveNodeEngine(plugins=[plugin])
    path = str(workspace / "notes.txt")
    assert node.query_document_viewer(path) == path + ".qml"
    assert node.active_plugin is plugin
    assert node.plugins[0] is plugin


def test_quick_controls_feature_detected(workspace, tmp_path_factory):
    imports = tmp_path_factory.mktemp("imports")
    for module in ("Controls", "Layouts", "Dialogs"):
        (imports / "QtQuick" / module).mkdir(parents=True)
    node = LiveNodeEngine(RecordingLoader(), import_paths=[str(imports)])
    node.set_workspace(workspace)
    node.load_document(LiveDocument("main.qml"))
    assert node.quick_features == Feature.QT_QUICK_CONTROLS


def test_update_ignored_without_allow_updates(workspace):
    node = LiveNodeEngine()
    node.set_workspace(workspace)
    node.update_document(LiveDocument("new.qml"), b"Item {}")
    assert not (workspace / "new.qml").exists()


def test_update_writes_into_workspace(workspace):
    node = LiveNodeEngine()
    node.set_workspace(workspace, WorkspaceOption.ALLOW_UPDATES)
    node.update_document(LiveDocument("sub/new.qml"), b"Item {}")
    assert (workspace / "sub" / "new.qml").read_bytes() == b"Item {}"


def test_overlay_enables_updates_and_keeps_workspace(workspace):
    with LiveNodeEngine() as node:
        node.set_workspace(workspace, WorkspaceOption.UPDATES_AS_OVERLAY)
        assert node.workspace_options & WorkspaceOption.ALLOW_UPDATES
        node.update_document(LiveDocument("main.qml"), b"Rectangle {}")
        assert (workspace / "main.qml").read_text() == "Item {}\n"
        redirected = node.url_interceptor.intercept(str(workspace / "main.qml"))
        assert redirected != str(workspace / "main.qml")
        with open(redirected, "rb") as handle:
            assert handle.read() == b"Rectangle {}"
        overlay_dir = node.url_interceptor.overlay
        assert os.path.basename(overlay_dir).startswith("qml-live-overlay--")
    assert not os.path.exists(overlay_dir)


def test_update_of_active_document_reloads(workspace):
    loader = RecordingLoader()
    node = LiveNodeEngine(loader, reload_delay=0.01)
    node.set_workspace(workspace, WorkspaceOption.ALLOW_UPDATES)
    node.load_document(LiveDocument("main.qml"))
    reloaded = threading.Event()
    node.document_loaded.connect(reloaded.set)
    node.update_document(LiveDocument("main.qml"), b"Item { }")
    try:
        assert reloaded.wait(5)
        assert len(loader.calls) == 2
    finally:
        node.close()