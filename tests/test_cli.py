import boto3
from fastapi.testclient import TestClient
from invoke import Context

from wedding_photos import cli
from wedding_photos.aws import storage
from wedding_photos.core.config import settings
from wedding_photos.core.logging_config import configure_logging

FOLDER = "boda-test"


def _use_app(monkeypatch):
    from wedding_photos.main import app
    monkeypatch.setattr(cli, "_http_client", lambda base_url: TestClient(app))


def test_cli_bootstrap_creates_resources_success(bare_aws, tmp_path, capsys):
    cli.bootstrap(Context(), env_file=str(tmp_path / "missing.env"))
    assert "bucket created: True, table created: True" in capsys.readouterr().out

    s3 = boto3.client("s3", region_name=settings.aws_region)
    assert [b["Name"] for b in s3.list_buckets()["Buckets"]] == [settings.bucket_name]

    cli.bootstrap(Context(), env_file=str(tmp_path / "missing.env"))
    assert "bucket created: False, table created: False" in capsys.readouterr().out


def test_cli_upload_directory_success(aws, tmp_path, make_image, monkeypatch, capsys):
    _use_app(monkeypatch)
    photos = tmp_path / "fotos"
    photos.mkdir()
    for i in range(3):
        (photos / f"f{i}.jpg").write_bytes(make_image(size=(20, 20)))
    (photos / "leeme.txt").write_text("no es una foto")
    nested = photos / "ceremonia"
    nested.mkdir()
    (nested / "anillos.png").write_bytes(make_image(size=(20, 20), fmt="PNG"))

    cli.upload(Context(), str(photos), guest_name="Tía Carmen", env_file=str(tmp_path / "missing.env"))

    out = capsys.readouterr().out
    assert "3 uploaded, 0 failed, 0 skipped" in out
    items, _ = storage.list_photos(FOLDER, page_size=10)
    assert len(items) == 3
    assert {i["description"] for i in items} == {"Subida por: Tía Carmen"}


def test_cli_upload_recursive_success(aws, tmp_path, make_image, monkeypatch, capsys):
    _use_app(monkeypatch)
    nested = tmp_path / "fotos" / "ceremonia"
    nested.mkdir(parents=True)
    (nested / "anillos.png").write_bytes(make_image(size=(20, 20), fmt="PNG"))

    cli.upload(Context(), str(tmp_path / "fotos"), recursive=True, env_file=str(tmp_path / "missing.env"))

    assert "1 uploaded, 0 failed" in capsys.readouterr().out
    items, _ = storage.list_photos(FOLDER, page_size=10)
    assert [i["description"] for i in items] == ["Subida por: Invitado"]


def test_cli_upload_missing_directory_failure(aws, tmp_path, monkeypatch, capsys):
    _use_app(monkeypatch)
    cli.upload(Context(), str(tmp_path / "nope"), env_file=str(tmp_path / "missing.env"))
    assert "uploaded" not in capsys.readouterr().out
    assert storage.list_photos(FOLDER, page_size=10) == ([], None)


def test_cli_download_gallery_success(aws, tmp_path, make_image, monkeypatch, capsys):
    _use_app(monkeypatch)
    for i in range(2):
        storage.store_photo(
            data_bytes=make_image(size=(10, 10)),
            folder_id=FOLDER,
            name=f"Ana_{i}.jpg",
            description="Subida por: Ana",
        )
    dest = tmp_path / "copia"

    cli.download(Context(), str(dest), env_file=str(tmp_path / "missing.env"))

    assert "2 photos saved" in capsys.readouterr().out
    assert sorted(p.name for p in dest.iterdir()) == ["Ana_0.jpg", "Ana_1.jpg"]


def test_cli_env_file_reaches_settings_success(tmp_path, monkeypatch):
    for name in type(settings).model_fields:
        monkeypatch.setattr(settings, name, getattr(settings, name))
    for var in ("BUCKET_NAME", "TABLE_NAME", "LOG_LEVEL"):
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    env_file = tmp_path / ".env"
    env_file.write_text("BUCKET_NAME=from-dotenv\nTABLE_NAME=fotos-boda\nLOG_LEVEL=WARNING\n")

    cli._load_env(str(env_file))

    assert settings.bucket_name == "from-dotenv"
    assert settings.table_name == "fotos-boda"
    assert settings.log_level == "WARNING"

    monkeypatch.undo()
    configure_logging(force=True)
