"""Indexing, documentation generation and search over code projects."""

from __future__ import annotations

import json
import os
import shutil
import sqlite3
import stat
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Sequence

from termcolor import colored
from tqdm import tqdm

from codesage.config import Config, ConfigError, ProjectConfig
from codesage.hashes import FileHashStore, calculate_md5_hash
from codesage.ollama_client import OllamaClient, OllamaError
from codesage.temp_monitor import TemperatureMonitor, TemperatureUnavailable
from codesage.vector_store import Document, VectorDB

SOURCE_EXTENSIONS = frozenset(
    {".py", ".js", ".ts", ".java", ".cpp", ".c", ".go", ".vue", ".jsx", ".tsx"}
)
DEFAULT_EXCLUDES = (
    "/node_modules", "/venv", "/build", "/dist", "/.venv", "/log",
    "/node_modules/", "/venv/", "/build/", "/dist/", "/.venv/", "/log/",
    "/.vite/", "/.git/",
)
PROJECT_CONFIG_FILE = "project_config.json"

CRITICAL_TEMP = 80
SAFE_TEMP = 65
MAX_FILE_PROCESS_TIME = 30.0
MAX_TOTAL_PROCESS_TIME = 5 * 60.0
COOL_DOWN_PERIOD = 60.0
BATCH_SIZE = 10
BATCH_PAUSE = 10.0
AUTOSAVE_INTERVAL = 30.0


class _IndexFailure(Exception):
    """One file could not be documented; the message says why."""


def _step(message: str, errors, action: Callable):
    try:
        return action()
    except errors as exc:
        raise _IndexFailure(f"{message}: {exc}") from exc


def _walk_files(path: str, prune: Callable[[str], bool]) -> Iterator[str]:
    """Yield non-directory paths below ``path`` in lexical depth-first order."""
    if not stat.S_ISDIR(os.lstat(path).st_mode):
        yield path
    elif not prune(path):
        for name in sorted(os.listdir(path)):
            yield from _walk_files(os.path.join(path, name), prune)


def parse_directory(
    directory_path: str | Path,
    exclude_dirs: Iterable[str] = (),
    exclude_files: Iterable[str] = (),
) -> list[str]:
    """List the source files below a directory, skipping excluded folders and names."""
    excluded_dirs = list(exclude_dirs)
    excluded_names = set(exclude_files)
    walk = _walk_files(
        os.fspath(directory_path), lambda p: any(e in p for e in excluded_dirs)
    )
    return [
        path for path in walk
        if os.path.basename(path) not in excluded_names
        and os.path.splitext("x" + os.path.basename(path))[1] in SOURCE_EXTENSIONS
    ]


def build_documentation_prompt(code: str) -> str:
    """Return the prompt asking a model to document a piece of code."""
    return (
        f"{code}\n"
        "\t\tGenerate comments and documentation for this piece of code, "
        "only return text and do not return any code.\n\n"
        "\t\tDo not skip any function defined. "
        "It is critically important that we cover all functions.\n"
        "\t\tAlso generate documentation only for functions and classes which are defined.\n\n"
        "\t\tDocumentation should be at function level or class level, "
        "no line-specific comments should be returned."
    )


def build_search_prompt(context: str, query: str) -> str:
    """Return the prompt answering a question from retrieved documentation."""
    return (
        f"\n\t\tContext: {context}\n\t\tQuestion: {query}\n"
        "\t\tAnswer query clearly and concisely, include relevant file paths when "
        "applicable. Your answer should be related to this codebase only"
    )


def build_review_prompt(diff: str) -> str:
    """Return the prompt asking for a review of a diff."""
    return (
        "Review the following code changes and provide:\n"
        "1. Potential bugs or issues\n2. Code style improvements\n"
        "3. Security concerns\n4. Performance optimizations\n\n"
        f"Code diff:\n{diff}\n\nProvide concise, actionable feedback:"
    )


class CodeAssistant:
    """Documents source projects, keeps their search index and answers queries."""

    def __init__(
        self,
        config: Config,
        client: OllamaClient,
        hash_store: FileHashStore,
        vector_db: VectorDB,
        monitor_factory: Callable[[int, int, bool], TemperatureMonitor] = TemperatureMonitor,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.client = client
        self.hash_store = hash_store
        self.vector_db = vector_db
        self.project_config = ProjectConfig()
        self._monitor_factory = monitor_factory
        self._sleep = sleep

    def _embed(self, text: str) -> Sequence[float]:
        return self.client.embed(self.config.embedding_model, text)

    def _docs_dir(self, project_name: str) -> str:
        return os.path.join(self.config.docs_dir, project_name)

    def generate_comments(self, code: str) -> str:
        """Ask the documentation model to describe the functions and classes in code."""
        return self.client.chat(
            self.config.documentation_model, build_documentation_prompt(code)
        )

    def generate_code_review(self, diff: str) -> str:
        """Ask the documentation model to review a diff."""
        return self.generate_comments(build_review_prompt(diff))

    def load_project_config(self, project_name: str) -> ProjectConfig:
        """Load a project's saved settings; an empty config if none are saved."""
        path = Path(self._docs_dir(project_name)) / PROJECT_CONFIG_FILE
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return ProjectConfig()
        except json.JSONDecodeError as exc:
            raise ConfigError(f"failed to parse project config: {exc}") from exc
        return ProjectConfig() if data is None else ProjectConfig.from_dict(data)

    def save_project_config(self, project_config: ProjectConfig) -> None:
        """Write a project's settings into its documentation directory."""
        path = Path(self._docs_dir(project_config.project_name)) / PROJECT_CONFIG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(project_config.to_dict(), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )

    def list_projects(self) -> list[str]:
        """Return the names of the documented projects, in lexical order."""
        return sorted(e.name for e in os.scandir(self.config.docs_dir) if e.is_dir())

    def _try_save(self, project_config: ProjectConfig, label: str) -> None:
        try:
            self.save_project_config(project_config)
        except OSError as exc:
            print(f"{label}: {exc}")

    @staticmethod
    def _check_temperature(monitor: TemperatureMonitor) -> None:
        try:
            temperature, source = monitor.get_temperature()
        except TemperatureUnavailable:
            return
        if temperature >= monitor.critical_temp:
            print(colored(
                f"\n🚨 {source.upper()} temperature critical ({temperature:.1f}°C)",
                "yellow",
            ))
            monitor.cool_down()

    def _document_file(self, file: str, rel_path: str, docs_dir: str) -> None:
        doc_path = Path(docs_dir) / (rel_path + ".txt")
        _step(f"Error creating directory for {file}", OSError,
              lambda: doc_path.parent.mkdir(parents=True, exist_ok=True))
        code = _step(f"Error reading file {file}", OSError,
                     lambda: Path(file).read_text(encoding="utf-8", errors="replace"))
        comments = _step(f"Error generating comments for {file}", OllamaError,
                         lambda: self.generate_comments(code))
        _step(f"Error writing doc file for {file}", OSError,
              lambda: doc_path.write_text(f"File: {rel_path}\n{comments}", encoding="utf-8"))

    def index_codebase(
        self,
        project_name: str,
        path: str | Path,
        exclude_folders: Iterable[str] = (),
        exclude_files: Iterable[str] = (),
    ) -> ProjectConfig:
        """Document every changed source file of a project and rebuild its index.

        Returns the project configuration saved at the end, with its counts.
        """
        root = os.fspath(path)
        exclude = [*exclude_folders, *DEFAULT_EXCLUDES]
        excluded_files = list(exclude_files)
        docs_dir = self._docs_dir(project_name)
        files = parse_directory(root, exclude, excluded_files)
        print(f"Indexing {len(files)} files...")
        processed = failed = updated = 0

        def snapshot() -> ProjectConfig:
            return ProjectConfig(
                project_name=project_name, project_path=root,
                exclude_folders=list(exclude), exclude_files=list(excluded_files),
                last_updated=datetime.now().astimezone(),
                total_indexed_files=processed, total_failed_files=failed,
            )

        try:
            self.project_config = self.load_project_config(project_name)
        except (ConfigError, OSError):
            self.project_config = snapshot()
            self._try_save(self.project_config, "Error saving project config")

        stop = threading.Event()

        def autosave() -> None:
            while not stop.wait(AUTOSAVE_INTERVAL):
                self._try_save(snapshot(), "Auto-save error")

        saver = threading.Thread(target=autosave, daemon=True)
        saver.start()
        monitor = self._monitor_factory(
            CRITICAL_TEMP, SAFE_TEMP, "localhost" not in self.config.ollama_host
        )
        start_total = time.monotonic()
        last_cool_down: Optional[float] = None
        try:
            with tqdm(total=len(files), unit="file") as bar:
                for file in files:
                    bar.update(1)
                    file_start = time.monotonic()
                    if last_cool_down is not None:
                        remaining = COOL_DOWN_PERIOD - (time.monotonic() - last_cool_down)
                        if remaining > 0 and monitor.use_fallback:
                            print(f"\nCooling down for {remaining:.0f} more seconds...")
                            self._sleep(remaining)
                        elif remaining > 0:
                            self._check_temperature(monitor)
                    try:
                        rel_path = _step(f"Error getting relative path for {file}",
                                         ValueError, lambda: os.path.relpath(file, root))
                        current_hash = _step(f"Error calculating hash for {file}",
                                             OSError, lambda: calculate_md5_hash(file))
                        old_hash = _step(f"Error getting hash for {file} from DB",
                                         sqlite3.Error, lambda: self.hash_store.get(file))
                        if old_hash == current_hash:
                            continue
                        updated += 1
                        print(f"Processing {file}")
                        self._document_file(file, rel_path, docs_dir)
                    except _IndexFailure as exc:
                        print(exc)
                        failed += 1
                        continue

                    processed += 1
                    if processed % BATCH_SIZE == 0:
                        print(f"Cooling down for {BATCH_PAUSE:.0f} seconds")
                        self._sleep(BATCH_PAUSE)
                    try:
                        self.hash_store.set(file, current_hash)
                    except sqlite3.Error as exc:
                        print(f"Error setting hash for {file} in DB: {exc}")
                        failed += 1

                    file_time = time.monotonic() - file_start
                    total_time = time.monotonic() - start_total
                    if (monitor.use_fallback and file_time > MAX_FILE_PROCESS_TIME) or (
                        total_time > MAX_TOTAL_PROCESS_TIME
                    ):
                        print(f"\nTriggering cooldown period (file: {file_time:.1f}s, "
                              f"total: {total_time / 60:.1f}m)...")
                        last_cool_down = time.monotonic()
                        self._sleep(COOL_DOWN_PERIOD)
                        start_total = time.monotonic()
                    else:
                        self._check_temperature(monitor)
        finally:
            stop.set()
            saver.join()

        self.project_config = snapshot()
        self._try_save(self.project_config, "Error saving project config")
        print(f"Processed {processed} new files")
        print(f"{failed} files failed to process.")
        if updated > 0:
            print(f"{updated} files were updated and need reindexing.")
            self.vector_db.reset()
            self.create_vector_store(project_name, root)
        return self.project_config

    def create_vector_store(self, project_name: str, codebase_path: str | Path) -> int:
        """Embed every documentation file of a project; return how many were stored."""
        docs_dir = self._docs_dir(project_name)
        documents = []
        for path in _walk_files(docs_dir, lambda _: False):
            if path.endswith(".txt"):
                rel_path = path.removeprefix(docs_dir + os.sep).removesuffix(".txt")
                documents.append(Document(
                    id=rel_path,
                    content=Path(path).read_text(encoding="utf-8", errors="replace"),
                    metadata={"file_path": os.path.join(os.fspath(codebase_path), rel_path)},
                ))
        collection = self.vector_db.create_collection(project_name, self._embed)
        for document in tqdm(documents, desc="Embedding documents", unit="doc"):
            collection.add_document(document)
        print(f"Index updated for {project_name} with {len(documents)} files")
        return len(documents)

    def reset_project(self, project_name: str) -> int:
        """Delete a project's documentation and stored hashes; return hashes removed."""
        project_config = self.load_project_config(project_name)
        shutil.rmtree(self._docs_dir(project_name), ignore_errors=True)
        if not project_config.project_path:
            return 0
        return self.hash_store.delete_prefix(os.path.join(project_config.project_path, ""))

    def search_codebase(self, project_name: str, query: str) -> str:
        """Answer a question about a project from its closest documentation."""
        results = self.vector_db.get_collection(project_name, self._embed).query(query, 1)
        print("\nThinking...")
        context = "".join(result.content for result in results)
        return self.client.chat(
            self.config.code_chat_model, build_search_prompt(context, query)
        )


def create_assistant(config: Config) -> CodeAssistant:
    """Build a CodeAssistant with the stores and client the configuration names."""
    return CodeAssistant(
        config,
        OllamaClient(config.ollama_host),
        FileHashStore(config.sqlite_db_path),
        VectorDB(config.hash_db_path),
    )