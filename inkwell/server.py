"""Preview and development servers for Inkwell.

- PreviewServer serves an existing build as-is.
- DevServer builds into a staging directory, serves the result, watches the
  sources and rebuilds plus reloads connected browsers on every change.

Both answer directory listings and missing paths with a 404, serving the
generated 404.html when present.
"""

from __future__ import annotations

import asyncio
import functools
import json
import os
import shutil
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import click
import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import build_site
from .config import CONFIG_FILENAME, load_config

WATCHED_FOLDERS = ("content", "public", "layouts", "assets")

RELOAD_SNIPPET = """<script>
(() => {{
  const socket = new WebSocket(`ws://${{location.hostname}}:{port}`);
  socket.addEventListener('message', (event) => {{
    if (JSON.parse(event.data).type === 'reload') location.reload();
  }});
}})();
</script>
"""


class SiteRequestHandler(SimpleHTTPRequestHandler):
    """Serves a built site.

    Folders resolve to their index.html, everything else that does not
    exist gets the site's 404 page. HTML bodies pass through ``snippet``
    injection, which is empty unless live reload is on.
    """

    snippet = ""

    def end_headers(self):
        self.send_header("Cache-Control", "no-store")
        super().end_headers()

    def log_message(self, format, *args):  # noqa: A002 - base class signature
        click.echo(f"{self.address_string()} - {format % args}", err=True)

    def list_directory(self, path):  # pragma: no cover - send_head answers first
        return self.not_found()

    def with_snippet(self, html: str) -> str:
        if not self.snippet:
            return html
        head, marker, tail = html.rpartition("</body>")
        if not marker:
            return html + self.snippet
        return f"{head}{self.snippet}{marker}{tail}"

    def send_page(self, html: str, status: int = 200) -> None:
        body = self.with_snippet(html).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def not_found(self):
        page = Path(self.directory, "404.html")
        if page.is_file():
            self.send_page(page.read_text(encoding="utf-8"), status=404)
        else:
            self.send_error(404, "File not found")
        return None

    def send_head(self):
        target = Path(self.translate_path(self.path))
        if target.is_dir():
            target = target / "index.html"
        if not target.is_file():
            return self.not_found()
        if target.suffix != ".html":
            return super().send_head()
        self.send_page(target.read_text(encoding="utf-8"))
        return None


def reload_handler(port: int) -> type[SiteRequestHandler]:
    """Return a handler class that injects the reload snippet for ``port``."""
    return type(
        "LiveReloadRequestHandler",
        (SiteRequestHandler,),
        {"snippet": RELOAD_SNIPPET.format(port=port)},
    )


def make_http_server(directory: Path, port: int, handler_cls) -> ThreadingHTTPServer:
    return ThreadingHTTPServer(("", port), functools.partial(handler_cls, directory=str(directory)))


def snapshot_sources(project_root: Path) -> tuple | None:
    """Return (path, mtime, size) of every watched file, None if there are none.

    Broken links and files vanishing mid-scan are left out.
    """
    files = [project_root / CONFIG_FILENAME]
    for name in WATCHED_FOLDERS:
        folder = project_root / name
        if folder.is_dir():
            files.extend(p for p in sorted(folder.rglob("*")) if not p.is_dir())

    entries = []
    for path in files:
        try:
            info = path.stat()
        except OSError:
            continue
        entries.append((str(path.relative_to(project_root)), info.st_mtime_ns, info.st_size))
    return tuple(entries) or None


class PreviewServer:
    """Serves the existing output directory without rebuilding."""

    def __init__(self, project_root: Path, port: int | None = None):
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output_dir = self.config.output_path
        self.port = port or self.config.port

    def check_output(self) -> None:
        """Raise FileNotFoundError unless the output directory holds a build."""
        if not self.output_dir.is_dir() or not any(self.output_dir.rglob("*.html")):
            raise FileNotFoundError(
                f"No build found in {self.output_dir}; run `inkwell build` first"
            )

    def start(self) -> None:  # pragma: no cover - blocks until interrupted
        self.check_output()
        httpd = make_http_server(self.output_dir, self.port, SiteRequestHandler)
        click.echo(f"Previewing {self.output_dir} at http://localhost:{self.port}")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            httpd.shutdown()


class ReloadHub:
    """Websocket endpoint telling connected browsers to reload.

    The hub runs its own event loop in a background thread; ``notify`` is
    safe to call from any other thread.
    """

    def __init__(self, port: int):
        self.port = port
        self.clients: set = set()
        self.loop = asyncio.new_event_loop()

    def run(self) -> None:  # pragma: no cover - background thread
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_until_complete(self._serve())
        except OSError as exc:
            click.echo(f"Live reload unavailable on port {self.port}: {exc}", err=True)

    async def _serve(self) -> None:  # pragma: no cover - background thread
        async with websockets.serve(self.register, "0.0.0.0", self.port):
            await asyncio.Future()

    async def register(self, websocket) -> None:
        self.clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self.clients.discard(websocket)

    async def broadcast(self, message: str) -> None:
        for client in list(self.clients):
            try:
                await client.send(message)
            except Exception:
                self.clients.discard(client)

    def notify(self) -> None:
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self.broadcast(message), self.loop)

    def close(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)


class DevServer:
    """Development server with live reload.

    Attributes:
        project_root: Root directory of the project.
        config: Site configuration.
        output_dir: Directory being served.
        http_port: Port of the HTTP server.
        ws_port: Port of the live reload websocket.
    """

    quiet_period = 0.05

    def __init__(self, project_root: Path, http_port: int | None = None, ws_port: int | None = None):
        """Set up the server without starting anything.

        ``ws_port`` defaults to ``http_port + 1`` when only the HTTP port is
        overridden, otherwise to ``ws_port`` from inkwell.yaml.
        """
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output_dir = self.config.output_path
        self.staging_dir = self.output_dir.with_name(f"{self.output_dir.name}.staging")
        self.http_port = http_port or self.config.port
        if ws_port is None:
            ws_port = self.http_port + 1 if http_port else self.config.ws_port
        self.ws_port = ws_port
        self.hub = ReloadHub(ws_port)
        self.observer: Observer | None = None
        self.snapshot: tuple | None = None
        self._lock = threading.Lock()
        self._finished_at = 0.0

    def start(self, include_drafts: bool = False) -> None:  # pragma: no cover - blocks
        self.build(include_drafts)
        self.snapshot = snapshot_sources(self.project_root)
        httpd = make_http_server(self.output_dir, self.http_port, reload_handler(self.ws_port))
        threading.Thread(target=httpd.serve_forever, daemon=True).start()
        threading.Thread(target=self.hub.run, daemon=True).start()
        self.watch(include_drafts)
        click.echo(f"Serving {self.output_dir} at http://localhost:{self.http_port}")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()
            httpd.shutdown()

    def stop(self) -> None:
        if self.observer is not None:
            self.observer.stop()
            self.observer.join()
        self.hub.close()

    def watch(self, include_drafts: bool) -> None:
        handler = SourceChangeHandler(self, include_drafts)
        observer = Observer()
        for name in WATCHED_FOLDERS:
            folder = self.project_root / name
            if folder.is_dir():
                observer.schedule(handler, str(folder), recursive=True)
        # picks up inkwell.yaml
        observer.schedule(handler, str(self.project_root), recursive=False)
        observer.start()
        self.observer = observer

    def build(self, include_drafts: bool) -> None:
        """Build into the staging directory, then swap it into place."""
        if self.staging_dir.exists():
            shutil.rmtree(self.staging_dir)
        build_site(
            self.project_root,
            include_drafts=include_drafts,
            clean_output=True,
            output_dir_override=self.staging_dir,
        )
        self.publish_staging()

    def publish_staging(self) -> None:
        if self.output_dir.exists():
            shutil.rmtree(self.output_dir)
        os.replace(self.staging_dir, self.output_dir)

    def rebuild(self, include_drafts: bool) -> bool:
        """Rebuild after a source change and reload browsers.

        Returns False when the call was dropped: another rebuild is running,
        the previous one finished moments ago, or no watched file changed.
        A failing build is reported and the previous output keeps being
        served.
        """
        if time.monotonic() - self._finished_at < self.quiet_period:
            return False
        if not self._lock.acquire(blocking=False):
            return False
        try:
            snapshot = snapshot_sources(self.project_root)
            if snapshot is not None and snapshot == self.snapshot:
                return False
            click.echo("Change detected; rebuilding...")
            try:
                self.build(include_drafts)
            except Exception as exc:
                click.echo(click.style(f"Rebuild failed: {exc}", fg="red"), err=True)
                return False
            self.snapshot = snapshot
            self.hub.notify()
            return True
        finally:
            self._finished_at = time.monotonic()
            self._lock.release()


class SourceChangeHandler(FileSystemEventHandler):
    """Triggers a rebuild for changes outside the generated directories."""

    def __init__(self, server: DevServer, include_drafts: bool):
        super().__init__()
        self.server = server
        self.include_drafts = include_drafts

    def ignores(self, path: Path) -> bool:
        if ".git" in path.parts:
            return True
        generated = (self.server.output_dir, self.server.staging_dir)
        return any(path == folder or folder in path.parents for folder in generated)

    def on_any_event(self, event):
        if event.is_directory or self.ignores(Path(event.src_path)):
            return
        self.server.rebuild(self.include_drafts)
