import pytest

from codesage.config import ProjectConfig
from codesage.web import create_app


class StubAssistant:
    def __init__(self, projects=(), config=None, answer="", list_error=None, search_error=None):
        self.projects = list(projects)
        self.config = config or ProjectConfig()
        self.answer = answer
        self.list_error = list_error
        self.search_error = search_error
        self.queries = []

    def list_projects(self):
        if self.list_error:
            raise self.list_error
        return list(self.projects)

    def load_project_config(self, name):
        return self.config

    def search_codebase(self, name, query):
        if self.search_error:
            raise self.search_error
        self.queries.append((name, query))
        return self.answer


@pytest.fixture
def dirs(tmp_path):
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "index.html").write_text("{% for p in Projects %}[{{ p }}]{% endfor %}")
    (templates / "project.html").write_text("{{ ProjectName }}|{{ ProjectPath }}")
    (templates / "chat.html").write_text("chat:{{ ProjectName }}")
    static = tmp_path / "static"
    static.mkdir()
    (static / "style.css").write_text("body{}")
    return templates, static


def client_for(assistant, dirs, index_action=lambda: None, reindex_action=lambda: None):
    templates, static = dirs
    app = create_app(assistant, templates, static, index_action, reindex_action)
    return app.test_client()


def test_home_lists_projects(dirs):
    client = client_for(StubAssistant(projects=["alpha", "beta"]), dirs)
    response = client.get("/")
    assert response.status_code == 200
    assert response.get_data(as_text=True) == "[alpha][beta]"


def test_home_missing_template(tmp_path, dirs):
    _, static = dirs
    app = create_app(StubAssistant(), tmp_path / "none", static, lambda: None, lambda: None)
    response = app.test_client().get("/")
    assert response.status_code == 500
    assert "Error parsing template" in response.get_data(as_text=True)


def test_home_listing_error(dirs):
    client = client_for(StubAssistant(list_error=OSError("gone")), dirs)
    response = client.get("/")
    assert response.status_code == 500
    assert "Error listing projects: gone" in response.get_data(as_text=True)


def test_project_page(dirs):
    config = ProjectConfig(project_name="demo", project_path="/src/demo")
    client = client_for(StubAssistant(config=config), dirs)
    response = client.get("/project/demo")
    assert response.get_data(as_text=True) == "demo|/src/demo"


def test_chat_page(dirs):
    client = client_for(StubAssistant(), dirs)
    assert client.get("/chat/demo").get_data(as_text=True) == "chat:demo"


def test_query_requires_fields(dirs):
    client = client_for(StubAssistant(), dirs)
    response = client.post("/query", data={"project_name": "demo"})
    assert response.status_code == 400
    assert "Project name and query are required" in response.get_data(as_text=True)


def test_query_escapes_response(dirs):
    stub = StubAssistant(answer="<b>x</b> & 'y'")
    client = client_for(stub, dirs)
    response = client.post("/query", data={"project_name": "demo", "query": "a<b"})
    assert response.status_code == 200
    assert response.content_type.startswith("text/html")
    assert response.get_data(as_text=True) == (
        "<p><strong>Query:</strong> a&lt;b</p>"
        "<p><strong>Response:</strong> &lt;b&gt;x&lt;/b&gt; &amp; &#39;y&#39;</p>"
    )
    assert stub.queries == [("demo", "a<b")]


def test_query_search_error(dirs):
    client = client_for(StubAssistant(search_error=KeyError("demo")), dirs)
    response = client.get("/query?project_name=demo&query=q")
    assert response.status_code == 500
    assert "Error searching codebase" in response.get_data(as_text=True)


def test_index_runs_action_and_redirects(dirs):
    calls = []
    client = client_for(StubAssistant(), dirs, index_action=lambda: calls.append("index"))
    response = client.get("/index")
    assert response.status_code == 303
    assert response.headers["Location"] == "/"
    assert calls == ["index"]


def test_index_failure(dirs):
    def fail():
        raise ValueError("bad path")

    client = client_for(StubAssistant(), dirs, index_action=fail)
    response = client.get("/index")
    assert response.status_code == 500
    assert "Error Indexing: bad path" in response.get_data(as_text=True)


def test_reindex_runs_action(dirs):
    calls = []
    client = client_for(StubAssistant(), dirs, reindex_action=lambda: calls.append("re"))
    response = client.post("/reindex")
    assert response.status_code == 303
    assert calls == ["re"]


def test_reindex_failure(dirs):
    def fail():
        raise ValueError("nope")

    client = client_for(StubAssistant(), dirs, reindex_action=fail)
    response = client.get("/reindex")
    assert response.status_code == 500
    assert "Error Reindexing: nope" in response.get_data(as_text=True)


def test_static_files_served(dirs):
    client = client_for(StubAssistant(), dirs)
    response = client.get("/static/style.css")
    assert response.status_code == 200
    assert response.get_data(as_text=True) == "body{}"
    response.close()