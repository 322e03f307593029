"""Interactive console for indexing, searching and reviewing projects."""

from __future__ import annotations

import argparse
import os
import re
import sys
import threading
from typing import Callable, Optional, Sequence, TextIO

from codesage import web
from codesage.assistant import CodeAssistant, create_assistant
from codesage.config import ConfigError, ProjectConfig, load_config
from codesage.git_utils import GitError, get_commit_list, get_git_diff
from codesage.ollama_client import OllamaError, make_models_available

BANNER = """
\t┌────────────────────────────────────────────┐
\t│   CodeSage - The Sage Knows Your Code      │
\t│   AI-Powered Code Documentation & Review   │
\t└────────────────────────────────────────────┘
\t"""

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def split_list(text: str) -> list[str]:
    """Split a comma separated answer into trimmed items; empty text gives []."""
    if not text:
        return []
    return [item.strip() for item in text.split(",")]


def select_project(projects: Sequence[str], choice: str) -> str:
    """Return the project picked by a 1-based number typed by the user."""
    match = _LEADING_INT.match(choice)
    index = int(match.group(1)) if match else 0
    if not 1 <= index <= len(projects):
        raise ValueError(f"invalid project selection: {choice!r}")
    return projects[index - 1]


class ConsoleApp:
    """Menu-driven front end over a code assistant."""

    def __init__(
        self,
        assistant: CodeAssistant,
        input_fn: Callable[[], str] = input,
        output: Optional[TextIO] = None,
    ) -> None:
        self.assistant = assistant
        self._input = input_fn
        self._output = output

    def _say(self, *parts: object, end: str = "\n") -> None:
        print(*parts, end=end, file=self._output or sys.stdout, flush=True)

    def _ask(self, prompt: str) -> str:
        self._say(prompt, end="")
        return self._input()

    def _show_projects(self, projects: Sequence[str]) -> None:
        self._say("Available projects:")
        for number, name in enumerate(projects, start=1):
            self._say(f"{number}. {name}")

    def prompt_project_details(self) -> tuple[str, str, list[str], list[str]]:
        """Ask for a project's name, path and exclusions."""
        name = self._ask("Enter project name: ")
        path = self._ask("Enter codebase path: ")
        folders = split_list(self._ask("Folders to exclude (comma separated): "))
        files = split_list(self._ask("Files to exclude (comma separated): "))
        return name, path, folders, files

    def index(self) -> ProjectConfig:
        """Index a project whose details are typed in."""
        name, path, folders, files = self.prompt_project_details()
        return self.assistant.index_codebase(name, path, folders, files)

    def search(self) -> None:
        """Answer questions about a chosen project until 'exit' is typed."""
        projects = self.assistant.list_projects()
        if not projects:
            self._say("No indexed projects found")
            return
        self._show_projects(projects)
        selected = select_project(projects, self._ask("Select project: "))
        self._say(f"Loaded {selected}. Enter queries (type 'exit' to quit):")
        while True:
            try:
                query = self._ask("\nQuery: ").strip()
            except EOFError:
                return
            if query.lower() == "exit":
                return
            self._say(self.assistant.search_codebase(selected, query), end="")

    def reindex(self) -> Optional[ProjectConfig]:
        """Optionally wipe a chosen project's data, then index it again."""
        projects = self.assistant.list_projects()
        if not projects:
            self._say("No projects available for reindexing")
            return None
        self._show_projects(projects)
        selected = select_project(projects, self._ask("Select project to reindex: "))
        project_config = self.assistant.load_project_config(selected)
        confirm = self._ask(f"Delete ALL data for {selected} and reindex? (y/n): ")
        if confirm.lower() == "y":
            self.assistant.reset_project(selected)

        self._say(f"Reindexing {selected}...")
        if project_config.project_path:
            return self.assistant.index_codebase(
                project_config.project_name or selected,
                project_config.project_path,
                project_config.exclude_folders,
                project_config.exclude_files,
            )
        name, path, folders, files = self.prompt_project_details()
        return self.assistant.index_codebase(name, path, folders, files)

    def review_commit(self, repo_path: str) -> str:
        """Let the user pick a recent commit and print a model review of it."""
        try:
            commits = get_commit_list(repo_path)
        except GitError as exc:
            raise GitError(f"failed to get commit list: {exc}") from exc

        self._say("\nRecent Commits:")
        for number, commit in enumerate(commits, start=1):
            self._say(f"{number}. {commit[:8]}")

        match = _LEADING_INT.fullmatch(self._ask("\nSelect commit to review (number): ").strip() or "x")
        choice = int(match.group(1)) if match else 0
        if not 1 <= choice <= len(commits):
            raise ValueError("invalid commit selection")

        try:
            diff = get_git_diff(repo_path, commits[choice - 1])
        except GitError as exc:
            raise GitError(f"failed to get diff: {exc}") from exc

        review = self.assistant.generate_code_review(diff)
        self._say("\nCode Review:")
        self._say(review)
        return review

    def _review_menu(self) -> None:
        projects = self.assistant.list_projects()
        if not projects:
            self._say("No indexed projects found")
        self._show_projects(projects)
        selected = select_project(projects, self._ask("Select project: "))
        project_config = self.assistant.load_project_config(selected)
        self.review_commit(project_config.project_path)

    def run(self) -> None:
        """Show the main menu until the user exits or input ends."""
        actions: dict[str, Callable[[], object]] = {
            "1": self.index,
            "2": self.search,
            "3": self.reindex,
            "4": self._review_menu,
        }
        while True:
            self._say("\nCode Assistant Console")
            self._say("1. Index Codebase")
            self._say("2. Search Codebase")
            self._say("3. Reindex Codebase")
            self._say("4. Review Commit")
            self._say("5. Exit")
            try:
                choice = self._ask("Select option: ")
            except EOFError:
                return
            if choice == "5":
                self._say("Exiting...")
                return
            action = actions.get(choice)
            if action is None:
                self._say("Invalid choice")
                continue
            try:
                action()
            except Exception as exc:  # the menu keeps running after any failure
                self._say(f"Error: {exc}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Load settings, make sure the models exist, then run the web UI and console."""
    parser = argparse.ArgumentParser(
        prog="codesage", description="AI-powered code documentation and review."
    )
    parser.add_argument("--config", default="config.json", help="settings file")
    parser.add_argument("--no-web", action="store_true", help="do not start the web UI")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Failed to load config: {exc}")
        return 1

    os.environ["OLLAMA_HOST"] = config.ollama_host

    try:
        make_models_available(config)
    except OllamaError as exc:
        print(f"Error getting models: {exc}", file=sys.stderr)
        return 1

    assistant = create_assistant(config)
    try:
        assistant.list_projects()
    except OSError as exc:
        print(f"Error loading projects: {exc}")
    print(BANNER)

    if not args.no_web:
        threading.Thread(
            target=web.serve, args=(assistant, config.web_port), daemon=True
        ).start()
    ConsoleApp(assistant).run()
    return 0