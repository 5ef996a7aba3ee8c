import pytest

from nibbler.config import reset_settings


BLOG_HTML = """<!doctype html>
<title>Maximum awesome</title>

<body>
  <ol id="nav">
    <li>Home</li>
    <li>About</li>
    <li>Help</li>
  </ol>

  <div class="hentry">
    <h1>First article</h1>
    <p class="pubdate">Published on Oct 1</p>
  </div>

  <div class="hentry">
    <h1>Second article</h1>
    <p class="pubdate">Published on Sep 5</p>
    <span><a href="http://mislav.uniqpath.com">My blog</a></span>
  </div>
</body>
"""

TWEETS = [
    {
        "created_at": "Thu Oct 22 23:50:02 +0000 2009",
        "text": "It is OK being wrong.",
        "id": 5083117521,
        "user": {"name": "Ryan Bigg", "screen_name": "ryanbigg", "followers_count": 432},
    },
    {
        "created_at": "Mon Oct 19 23:43:50 +0000 2009",
        "text": "Programming is the art of forcing the exceptions of the real world into the absolutes of a computer.",
        "id": 5004137490,
        "user": {"name": "Ryan Bates", "screen_name": "rbates", "followers_count": 3225},
    },
]


@pytest.fixture
def blog_html():
    return BLOG_HTML


@pytest.fixture
def tweets():
    return [dict(t, user=dict(t["user"])) for t in TWEETS]


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Each test reads settings from a clean environment."""
    for name in ("NIBBLER_HTML_BACKEND", "NIBBLER_STRIP_TEXT", "NIBBLER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()
