import os

from invoke import task, Context


IS_CI = os.getenv("GITHUB_ACTIONS") == "true"


@task
def doc(c: Context):
    """Generate documentation"""
    c.run("pdoc -o ./doc osm_extract/", echo=True, pty=True)


@task
def doco(c: Context):
    """Generate documentation and open in browser"""
    from pathlib import Path
    import webbrowser

    doc(c)

    path = Path(__file__).parent / "doc" / "index.html"
    url = f"file://{path}"
    webbrowser.open(url, new=0, autoraise=True)


@task
def fmt(c: Context):
    """Run code formatters"""
    c.run("isort osm_extract test", echo=True, pty=True)
    c.run("ruff format osm_extract test tasks.py", echo=True, pty=True)


@task
def install(c: Context):
    """Install the package with all extras"""
    c.run("pip install -e '.[test,dev]'", echo=True, pty=True)


@task
def lint(c: Context):
    """Run linter and type checker"""
    c.run("ruff check osm_extract/", echo=True, warn=True, pty=True)
    c.run("mypy osm_extract/", echo=True, warn=True, pty=True)
    c.run("slotscheck -m osm_extract --require-subclass", echo=True, warn=True, pty=True)


@task
def test(c: Context):
    """Run all tests in parallel"""
    _pytest(c, cov=not IS_CI, parallel=True)


@task
def test_cov(c: Context):
    """Run all tests in parallel, with coverage report"""
    _pytest(c, cov=True, parallel=True)


@task
def test_quick(c: Context):
    """Run all tests in a single process"""
    _pytest(c, cov=False, parallel=False)


def _pytest(c: Context, *, cov: bool, parallel: bool):
    cmd = ["pytest", "-vv"]

    if cov:
        cmd.append("--cov=osm_extract/")

    if cov and IS_CI:
        cmd.append("--cov-report=xml")

    if parallel:
        cmd.append("--numprocesses=auto")
        cmd.append("--dist=loadgroup")

    c.run(" ".join(cmd), echo=True, pty=True)

    if cov and not IS_CI:
        c.run("rm -f .coverage*", echo=True, pty=True)


@task
def build(c: Context):
    """Build source and wheel distributions"""
    c.run("python -m build", echo=True, pty=True)
