import os

from PIL import Image

from livehub.adapters import ContentAdapter, ImageAdapter
from livehub.preview import PreviewImageProvider


class CountingPlugin(ContentAdapter):
    def __init__(self):
        super().__init__()
        self.calls = []

    def can_preview(self, path):
        return path.endswith(".qml")

    def preview(self, path, requested_size):
        self.calls.append((path, requested_size))
        return Image.new("RGB", requested_size or (8, 8))


class FakeEngine:
    def __init__(self):
        self.calls = []

    def convert_icon_to_image(self, path, size):
        self.calls.append((path, size))
        return Image.new("RGB", size)


def test_image_adapter_preview(tmp_path):
    path = tmp_path / "pic.png"
    Image.new("RGB", (40, 20)).save(path)
    provider = PreviewImageProvider()
    provider.set_plugins([ImageAdapter()])
    image, size = provider.request_image(str(path), (20, 20))
    assert size == image.size
    assert image.width <= 20 and image.height <= 20


def test_cache_hit_skips_plugin(tmp_path):
    path = tmp_path / "main.qml"
    path.write_text("Item {}")
    plugin = CountingPlugin()
    provider = PreviewImageProvider()
    provider.set_plugins([plugin])
    first, _ = provider.request_image(str(path), (10, 10))
    second, size = provider.request_image(str(path), (10, 10))
    assert len(plugin.calls) == 1
    assert second is first
    assert size == (10, 10)


def test_cache_key_includes_size(tmp_path):
    path = tmp_path / "main.qml"
    path.write_text("Item {}")
    plugin = CountingPlugin()
    provider = PreviewImageProvider()
    provider.set_plugins([plugin])
    provider.request_image(str(path), (10, 10))
    _, size = provider.request_image(str(path), (6, 6))
    assert len(plugin.calls) == 2
    assert size == (6, 6)


def test_modified_file_is_regenerated(tmp_path):
    path = tmp_path / "main.qml"
    path.write_text("Item {}")
    plugin = CountingPlugin()
    provider = PreviewImageProvider()
    provider.set_plugins([plugin])
    provider.request_image(str(path), (10, 10))
    stat = os.stat(path)
    os.utime(path, (stat.st_atime + 100, stat.st_mtime + 100))
    provider.request_image(str(path), (10, 10))
    assert len(plugin.calls) == 2


def test_ignore_cache(tmp_path):
    path = tmp_path / "main.qml"
    path.write_text("Item {}")
    plugin = CountingPlugin()
    provider = PreviewImageProvider()
    provider.set_plugins([plugin])
    provider.ignore_cache = True
    assert provider.ignore_cache is True
    provider.request_image(str(path), (10, 10))
    provider.request_image(str(path), (10, 10))
    assert len(plugin.calls) == 2


def test_icon_fallback_uses_default_size_and_caches_by_suffix(tmp_path):
    engine = FakeEngine()
    provider = PreviewImageProvider(engine)
    first, size = provider.request_image(str(tmp_path / "a.txt"))
    assert engine.calls == [(str(tmp_path / "a.txt"), (512, 512))]
    assert size == (512, 512)
    second, second_size = provider.request_image(str(tmp_path / "b.txt"), (32, 32))
    assert second is first
    assert second_size == (512, 512)
    assert len(engine.calls) == 1


def test_icon_uses_requested_size(tmp_path):
    engine = FakeEngine()
    provider = PreviewImageProvider(engine)
    _, size = provider.request_image(str(tmp_path / "a.dat"), (32, 16))
    assert size == (32, 16)
    assert engine.calls[0][1] == (32, 16)


def test_no_engine_and_no_plugin_gives_nothing(tmp_path):
    provider = PreviewImageProvider()
    assert provider.request_image(str(tmp_path / "a.txt"), (10, 10)) == (None, None)