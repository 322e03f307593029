[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "codesage"
version = "0.1.0"
description = "Generate documentation for a codebase with a local Ollama server, search it semantically and review git commits."
requires-python = ">=3.10"
keywords = ["documentation", "ollama", "llm", "code-review", "semantic-search", "embeddings"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Documentation",
]
dependencies = [
    "requests",
    "flask",
    "tqdm",
    "termcolor",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
codesage = "codesage.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["codesage"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
