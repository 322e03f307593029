"""Browser front end for listing, inspecting and querying projects."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Optional

from flask import Flask, Response, redirect, render_template, request

from codesage.assistant import CodeAssistant
from codesage.config import ConfigError

_ESCAPES = str.maketrans({
    "\0": "\ufffd",
    '"': "&#34;",
    "'": "&#39;",
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
})


def _html_escape(text: str) -> str:
    return text.translate(_ESCAPES)


def _error(message: str, status: int) -> Response:
    return Response(message + "\n", status=status, mimetype="text/plain")


def create_app(
    assistant: CodeAssistant,
    template_dir: str | Path = "templates",
    static_dir: str | Path = "static",
    index_action: Optional[Callable[[], Any]] = None,
    reindex_action: Optional[Callable[[], Any]] = None,
) -> Flask:
    """Build the web application serving the assistant's projects."""
    if index_action is None or reindex_action is None:
        from codesage.cli import ConsoleApp

        console = ConsoleApp(assistant)
        index_action = index_action or console.index
        reindex_action = reindex_action or console.reindex

    templates = Path(os.path.abspath(template_dir))
    app = Flask(
        __name__,
        template_folder=str(templates),
        static_folder=os.path.abspath(static_dir),
        static_url_path="/static",
    )

    def render(name: str, **context: Any) -> Response:
        if not (templates / name).is_file():
            return _error(
                f"Error parsing template: open {templates / name}: no such file", 500
            )
        try:
            return Response(render_template(name, **context), mimetype="text/html")
        except Exception as exc:  # any failure while rendering becomes a 500
            return _error(f"Error executing template: {exc}", 500)

    @app.route("/")
    @app.route("/<path:_rest>")
    def home(_rest: str = "") -> Response:
        try:
            projects = assistant.list_projects()
        except OSError as exc:
            return _error(f"Error listing projects: {exc}", 500)
        return render("index.html", Projects=projects)

    @app.route("/project/")
    @app.route("/project/<path:project_name>")
    def project(project_name: str = "") -> Response:
        try:
            config = assistant.load_project_config(project_name)
        except (ConfigError, OSError) as exc:
            return _error(f"Error loading project config: {exc}", 500)
        return render(
            "project.html",
            ProjectName=config.project_name,
            ProjectPath=config.project_path,
            ExcludeFolders=config.exclude_folders,
            ExcludeFiles=config.exclude_files,
            LastUpdated=config.last_updated,
            TotalIndexedFiles=config.total_indexed_files,
            TotalFailedFiles=config.total_failed_files,
        )

    @app.route("/index", methods=["GET", "POST"])
    def index() -> Response:
        print("calling index code base")
        try:
            index_action()
        except Exception as exc:  # reported to the browser
            return _error(f"Error Indexing: {exc}", 500)
        return redirect("/", code=303)

    @app.route("/chat/")
    @app.route("/chat/<path:project_name>")
    def chat(project_name: str = "") -> Response:
        return render("chat.html", ProjectName=project_name)

    @app.route("/query", methods=["GET", "POST"])
    def query() -> Response:
        project_name = request.values.get("project_name", "")
        text = request.values.get("query", "")
        if not project_name or not text:
            return _error("Project name and query are required", 400)
        try:
            answer = assistant.search_codebase(project_name, text)
        except Exception as exc:  # reported to the browser
            return _error(f"Error searching codebase: {exc}", 500)
        body = (
            f"<p><strong>Query:</strong> {_html_escape(text)}</p>"
            f"<p><strong>Response:</strong> {_html_escape(answer)}</p>"
        )
        return Response(body, mimetype="text/html")

    @app.route("/reindex", methods=["GET", "POST"])
    def reindex() -> Response:
        try:
            reindex_action()
        except Exception as exc:  # reported to the browser
            return _error(f"Error Reindexing: {exc}", 500)
        return redirect("/", code=303)

    return app


def serve(assistant: CodeAssistant, port: str | int = "8080") -> None:
    """Run the web UI on all interfaces at the given port."""
    app = create_app(assistant)
    print(f"Starting web server on :{port}")
    app.run(host="0.0.0.0", port=int(port), threaded=True, use_reloader=False)