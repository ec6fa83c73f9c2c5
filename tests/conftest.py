import zipfile

import pytest
from openpyxl import Workbook

import config
from db import get_session
from import_engine.field_map import COLUMN_MAP
from main import create_app
from services.loads_service import LoadsService


@pytest.fixture(autouse=True)
def app(tmp_path, monkeypatch):
    """Flask app bound to a fresh SQLite file; uploads go to tmp_path."""
    monkeypatch.setattr(config, "UPLOAD_DIR", tmp_path / "uploads")
    app = create_app(f"sqlite:///{tmp_path / 'reloading.sqlite'}")
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Return a Flask test client."""
    return app.test_client()


@pytest.fixture
def session(app):
    s = get_session()
    yield s
    s.close()


@pytest.fixture
def add_load(app):
    """Create and commit one load in its own session; returns its id."""
    def _add(**fields):
        fields.setdefault("caliber", ".308 Winchester")
        s = get_session()
        try:
            load = LoadsService.create(s, fields)
            s.commit()
            return load.id
        finally:
            s.close()
    return _add


@pytest.fixture
def make_workbook(tmp_path):
    """Write rows (dicts keyed by spreadsheet header) to an .xlsx file."""
    def _make(rows, headers=None, name="loads.xlsx"):
        headers = headers or list(COLUMN_MAP)
        wb = Workbook()
        ws = wb.active
        ws.append(headers)
        for row in rows:
            ws.append([row.get(h) for h in headers])
        path = tmp_path / name
        wb.save(path)
        return path
    return _make


@pytest.fixture
def corrupt_sheet_workbook(make_workbook, tmp_path):
    """A valid .xlsx container whose first sheet XML is truncated."""
    good = make_workbook([{"Kaliber": "9mm"}], name="good.xlsx")
    path = tmp_path / "corrupt_sheet.xlsx"
    with zipfile.ZipFile(good) as src, zipfile.ZipFile(path, "w") as dst:
        for item in src.infolist():
            data = src.read(item.filename)
            if item.filename == "xl/worksheets/sheet1.xml":
                data = b"<worksheet><sheetData><row><c>oops"
            dst.writestr(item, data)
    return path
