import io
import os

import pytest
from fastapi import HTTPException, UploadFile
from PIL import Image
from starlette.datastructures import Headers

from medibook.application.services.image_service import ImageService
from medibook.infrastructure.storage.local_storage import LocalStorageRepository


def png_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 10, 10)).save(buf, format="PNG")
    return buf.getvalue()


def upload_file(data, filename="face.png", content_type="image/png"):
    return UploadFile(file=io.BytesIO(data), filename=filename, headers=Headers({"content-type": content_type}))


@pytest.fixture
def service(tmp_path):
    storage = LocalStorageRepository(upload_dir=str(tmp_path), base_url="http://testserver/")
    return ImageService(storage=storage, max_file_size=1024 * 1024, allowed_types=["image/png", "image/jpeg"])


def test_upload_stores_file_and_returns_url(service, tmp_path):
    url = service.upload("profiles", upload_file(png_bytes()))

    assert url.startswith("http://testserver/uploads/profiles/")
    assert url.endswith(".png")
    stored = os.path.join(str(tmp_path), "profiles", url.rsplit("/", 1)[1])
    with open(stored, "rb") as f:
        assert f.read() == png_bytes()


def test_no_file_means_no_image(service):
    assert service.upload("profiles", None) is None


def test_rejects_wrong_type(service):
    with pytest.raises(HTTPException) as e:
        service.upload("profiles", upload_file(b"GIF89a", filename="a.gif", content_type="image/gif"))
    assert e.value.status_code == 415


def test_rejects_large_file(tmp_path):
    svc = ImageService(storage=LocalStorageRepository(upload_dir=str(tmp_path)), max_file_size=10, allowed_types=["image/png"])
    with pytest.raises(HTTPException) as e:
        svc.upload("profiles", upload_file(png_bytes()))
    assert e.value.status_code == 413


def test_rejects_bytes_that_are_not_an_image(service, tmp_path):
    with pytest.raises(HTTPException) as e:
        service.upload("profiles", upload_file(b"definitely not a png"))
    assert e.value.status_code == 400
    assert not os.path.exists(os.path.join(str(tmp_path), "profiles"))
