# livehub

`livehub` is a library for keeping a viewer in step with a workspace of UI
documents. A hub publishes the files of a workspace and announces changed
directories; a node makes a document active, reloads it through a loader you
supply, and stores incoming updates either in the workspace or in a writable
overlay directory. Hub and node can live in one process or talk over TCP with
a small header-and-body message protocol.

## Installation

```
pip install livehub
```

Pillow is installed with the package; it is used by the image adapter and the
preview provider.

## Modules

- `livehub.runtime`
  - `Signal`: `connect(slot)`, `disconnect(slot)` (raises `ValueError` for an
    unknown slot) and `emit(*args)`, which calls slots in connection order.
  - `LiveRuntime`: `screen_width` and `screen_height` properties; setting a
    different value emits `screen_width_changed` / `screen_height_changed`.
- `livehub.document`
  - `LiveDocument(relative_file_path)`: a frozen path relative to a workspace.
    Empty, absolute or escaping (`../`) paths raise `DocumentError`.
  - `LiveDocument.resolve(workspace, file_path)` accepts an absolute or
    relative path that need not exist, and raises `DocumentError` when it lies
    outside the workspace. The workspace itself resolves to `"."`.
  - `exists_in`, `is_file_in`, `absolute_file_path_in`, and
    `require_file_in`, which returns the absolute path or raises
    `DocumentError` when the document is missing or not a regular file.
- `livehub.hub.LiveHubEngine`
  - `workspace` and `active_path` properties; setting them emits
    `workspace_changed` and `activate_document`.
  - `file_publishing_active` is off by default. When on,
    `publish_workspace()` emits `begin_publish_workspace`, one `publish_file`
    per visible file of the workspace and its subdirectories, then
    `end_publish_workspace`; `directories_changed(changes)` emits
    `file_changed` for the files in each given directory. It always re-emits
    `activate_document`.
- `livehub.node`
  - `WorkspaceOption` flags: `NONE`, `LOAD_DUMMY_DATA`, `ALLOW_UPDATES`,
    `UPDATES_AS_OVERLAY` (which turns on `ALLOW_UPDATES` as well).
  - `LiveNodeEngine(loader, plugins=..., import_paths=..., reload_delay=0.25, ...)`.
    `loader(path, context)` receives a `.qml` path and the context mapping
    (which holds `livert`, the `LiveRuntime`) and returns the displayed
    object; its `width` and `height`, when present, go to the runtime. An
    exception raised by the loader is reported through `log_errors` as a
    list of dicts with `url`, `line`, `column` and `description`.
  - `set_workspace(path, options)`, `load_document(document)`,
    `reload_document()`, `delay_reload()` (a restartable timer),
    `update_document(document, content)`, `query_document_viewer(path)` and
    `close()`, which cancels a pending reload and removes overlay directories
    created under the system temporary directory. The engine is also a
    context manager.
  - Files that are not `.qml` are offered to the content adapters first; the
    built-in `ImageAdapter` is always added after the ones you pass.
- `livehub.overlay.OverlayUrlInterceptor(base_path, overlay_path, other=None)`:
  `reserve(document)` maps a document into the overlay and returns the path to
  write; `intercept(path)` returns the overlay copy if there is one. Files
  already in the overlay are mapped on construction.
- `livehub.adapters`
  - `ContentAdapter`: the base class with `clean_up`, `can_preview`,
    `preview`, `can_adapt`, `adapt` and `is_full_screen`; `Feature` flags
    for `available_features`.
  - `ImageAdapter`: recognises images by content, previews them scaled to fit
    a requested `(width, height)` with the aspect ratio kept, and adapts them
    by setting `imageViewerBackgroundColor` and `imageViewerSource` in the
    context and returning `IMAGE_VIEWER_URL`.
- `livehub.preview.PreviewImageProvider(engine=None)`:
  `set_plugins(plugins)` and `request_image(path, requested_size)`, which
  returns `(image, size)`. Previews are cached by path and size until the
  file's modification time advances, unless `ignore_cache` is set. Files no
  adapter can preview fall back to `engine.convert_icon_to_image(path, size)`,
  cached by suffix.
- `livehub.options`: `Options` and `HostOptions` (default port 10234);
  `has_noninteractive_options()` is true when any host is to be added,
  removed or probed.
- `livehub.logger`
  - `Logger(stream=None)`: only one may exist at a time (a second raises
    `RuntimeError`); `close()` or leaving its `with` block frees the slot.
    `handle(kind, message, file, line, function)` emits `message(kind, text)`
    and writes `"<Kind>: <text> (<file>:<line>, <function>)"` to the stream
    or stderr.
  - `MessageType` and `set_ignore_messages(ignore)`, which makes every
    logger drop messages.
- `livehub.connection`: `encode_message(method, data)` and `IpcConnection`,
  whose `feed(data)` emits `received(method, content)` for each complete
  message. Content larger than `max_content_size` (10 MiB by default) is
  dropped. The frame is:

  ```
  Method:<name>\n
  Content-Length:<n>\n
  \n
  <n bytes of content>
  ```

- `livehub.client`: `IpcClient` queues calls until connected, retries every
  `retry_interval` seconds and gives up after `max_tries` attempts with
  `sending_error`. It offers `connect_to_server`, `send`, `wait_for_connected`,
  `wait_for_disconnected`, `wait_for_sent`, `disconnect_from_server` and the
  `state` property; `error_to_string(error)` describes a `SocketError`.
- `livehub.server`: `IpcServer` with `listen(port)` (0 picks a free port,
  see `server_port`), `set_max_connections(num)` and `close()`; it emits
  `received`, `client_connected`, `socket_connected`, `client_disconnected`
  and `socket_disconnected`.

## Example

```python
from livehub.server import IpcServer
from livehub.client import IpcClient

server = IpcServer()
server.received.connect(lambda method, content: print(method, content))
server.listen(10234)

client = IpcClient()
client.connect_to_server("127.0.0.1", 10234)
client.wait_for_connected(5.0)
uuid = client.send("echo(QString)", b"Hello")
client.wait_for_sent(uuid, 5.0)
client.disconnect_from_server()
server.close()
```

## What the package does not do

- It does not watch the file system. Call
  `LiveHubEngine.directories_changed` yourself, for example from a file
  watcher of your choice.
- It does not render documents. Displaying anything needs the `loader`
  callable passed to `LiveNodeEngine`; without one, loading a `.qml` document
  reports an error through `log_errors`.
- `LOAD_DUMMY_DATA` is accepted as a flag but loads nothing.
- There is no command-line program and no graphical interface; `Options`
  only holds settings.

## Running the tests

```
pip install -e .[test]
pytest
```