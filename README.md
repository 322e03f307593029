# codesage

CodeSage reads a codebase and writes documentation for each source file with a
model served by a local Ollama server. It embeds that documentation in a small
on-disk vector store, so you can ask questions about the code. It can also ask
the model to review a recent git commit.

## Installation

```
pip install .
```

You need a running Ollama server. On start-up CodeSage runs `ollama pull` for
each configured model, so the `ollama` command must be on your `PATH`. Commit
review runs `git`. Temperature-based pacing runs `sensors` (lm_sensors) if it
is there.

## Running

```
codesage [--config FILE] [--no-web]
```

- `--config FILE`: the settings file (default `config.json`).
- `--no-web`: do not start the web UI, only the console.

If the settings file does not exist, CodeSage writes it with these defaults and
carries on with them:

| key                   | default                  |
|-----------------------|--------------------------|
| `docs_dir`            | `./docs`                 |
| `embedding_model`     | `nomic-embed-text`       |
| `code_chat_model`     | `qwen2.5-coder:1.5b`     |
| `documentation_model` | `llama3.2:1b`            |
| `ollama_host`         | `http://localhost:11434` |
| `hash_db_path`        | `./db`                   |
| `sqlite_db_path`      | `file_hashes.db`         |
| `web_port`            | `8080`                   |

`git_bin_path` is also read from the file but is not used. `hash_db_path` is
the directory of the vector store. `sqlite_db_path` is the SQLite file that
holds the MD5 hash of every file seen at indexing.

The console menu offers:

1. **Index Codebase**: asks for a project name, a path, and comma-separated
   folders and file names to leave out. It then documents every `.py`, `.js`,
   `.ts`, `.java`, `.cpp`, `.c`, `.go`, `.vue`, `.jsx` and `.tsx` file whose
   MD5 hash has changed. A folder is skipped if its path contains any excluded
   text. `/node_modules`, `/venv`, `/build`, `/dist`, `/.venv`, `/log`,
   `/.vite/` and `/.git/` are always excluded. Each file's documentation is
   written to `docs_dir/<project>/<relative path>.txt`. If any file changed,
   the whole vector store is cleared and this project's documentation is
   embedded again.
2. **Search Codebase**: pick a project and type questions. The single closest
   documentation file is given to `code_chat_model` as context. Type `exit`
   to stop.
3. **Reindex Codebase**: pick a project. If you confirm with `y`, its
   documentation directory and the stored hashes under its path are deleted.
   It is then indexed again with its saved settings, or with details you type
   if none were saved.
4. **Review Commit**: pick a project. The last 20 commits of its repository
   are listed. The zero-context diff of the commit you choose is sent to
   `documentation_model` for a review.
5. **Exit**

Each project's settings and counts are kept in
`docs_dir/<project>/project_config.json`. They are saved every 30 seconds
during indexing and again at the end.

While indexing, CodeSage pauses from time to time. It pauses 10 seconds after
every 10 documented files. It pauses 60 seconds when a file took over 30
seconds (time-based mode) or when indexing has run over 5 minutes. When
Ollama runs on `localhost` and `sensors` works, it also waits for GPU/CPU
temperatures of 80 °C or more to drop below 65 °C. Otherwise it uses the
time-based mode.

## Web UI

Unless `--no-web` is given, a Flask server listens on `0.0.0.0:<web_port>`:

| path                      | what it does                                            |
|---------------------------|---------------------------------------------------------|
| `/`                       | renders `index.html` with `Projects`                    |
| `/project/<name>`         | renders `project.html` with the project's settings      |
| `/chat/<name>`            | renders `chat.html` with `ProjectName`                  |
| `/query`                  | takes `project_name` and `query`, returns an HTML answer |
| `/index`, `/reindex`      | run the console's index or reindex dialogue, then redirect to `/` |
| `/static/...`             | files from `./static`                                   |

## What it does not do

- The package ships no HTML templates or static files. The pages above are
  read from `./templates` and `./static` in the working directory. Without
  them those pages answer with an "Error parsing template" 500. `/query`
  works without them.
- `/index` and `/reindex` ask their questions on the server's console, not in
  the browser.

## Using it from Python

```python
from codesage.config import load_config
from codesage.assistant import create_assistant

config = load_config("config.json")
assistant = create_assistant(config)
project = assistant.index_codebase("myproject", "/path/to/code", ["tests"], [])
print(project.total_indexed_files, project.total_failed_files)
print(assistant.list_projects())
print(assistant.search_codebase("myproject", "Where is the config loaded?"))
```

Other pieces can be used on their own. `codesage.assistant.parse_directory`
lists source files. `codesage.git_utils.get_commit_list` and `get_git_diff`
wrap git. `codesage.ollama_client.OllamaClient` provides `chat` and `embed`.
`codesage.vector_store.VectorDB` and `Collection` make up the vector store.
`codesage.hashes.FileHashStore` stores file hashes. `codesage.web.create_app`
builds the Flask app.

## Tests

```
pip install ".[test]"
pytest
```