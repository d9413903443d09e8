"""Tests for the download route."""

from __future__ import annotations

import asyncio
import os
import re

import httpx
import pytest

from lanshare.download import GuardedStreamingResponse


def test_download_returns_exact_bytes(client, share_dir):
    response = client.get("/download/a.txt")
    assert response.status_code == 200
    assert response.content == (share_dir / "a.txt").read_bytes()
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["accept-ranges"] == "bytes"
    assert response.headers["content-length"] == str(len(response.content))
    assert "etag" in response.headers
    assert "last-modified" in response.headers


def test_every_listed_file_downloads(client, share_dir):
    html = client.get("/").text
    for rel in ["a.txt", "sub/b.png"]:
        assert f'href="/download/{rel}"' in html
        response = client.get(f"/download/{rel}")
        assert response.status_code == 200
        assert response.content == (share_dir / rel).read_bytes()


def test_nested_image_content_type(client, share_dir):
    response = client.get("/download/sub/b.png")
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content == (share_dir / "sub" / "b.png").read_bytes()


def test_unknown_extension_is_octet_stream(client, share_dir):
    (share_dir / "blob.zzzunknown").write_bytes(b"\x00\x01")
    response = client.get("/download/blob.zzzunknown")
    assert response.headers["content-type"] == "application/octet-stream"


def test_quoted_names(client, share_dir):
    (share_dir / "with space & more.txt").write_bytes(b"spaced")
    response = client.get("/download/with%20space%20%26%20more.txt")
    assert response.status_code == 200
    assert response.content == b"spaced"


def _download_hrefs(html: str) -> list[str]:
    return sorted(set(re.findall(r'href="(/download/[^"]+)"', html)))


@pytest.mark.skipif(os.sep != "/", reason="names need a POSIX filesystem")
def test_listed_names_with_odd_characters_download(client, share_dir):
    (share_dir / " lead.txt").write_bytes(b"leading")
    (share_dir / "a\\b.txt").write_bytes(b"backslash")
    (share_dir / "a.txt ").write_bytes(b"trailing")

    hrefs = _download_hrefs(client.get("/").text)
    assert "/download/%20lead.txt" in hrefs
    assert "/download/a%5Cb.txt" in hrefs
    assert "/download/a.txt%20" in hrefs

    for href in hrefs:
        response = client.get(href)
        assert response.status_code == 200, href


@pytest.mark.skipif(os.sep != "/", reason="names need a POSIX filesystem")
def test_trailing_space_does_not_alias_another_file(client, share_dir):
    (share_dir / "a.txt ").write_bytes(b"trailing")

    assert client.get("/download/a.txt%20").content == b"trailing"
    assert client.get("/download/a.txt").content == b"hello from a\n"

    (share_dir / "a.txt ").unlink()
    assert client.get("/download/a.txt%20").status_code == 404


@pytest.mark.skipif(os.sep != "/", reason="names need a POSIX filesystem")
def test_backslash_name_is_not_a_path(client, share_dir):
    (share_dir / "sub\\b.png").write_bytes(b"not the png")

    assert client.get("/download/sub%5Cb.png").content == b"not the png"
    assert client.get("/download/sub/b.png").content == (share_dir / "sub" / "b.png").read_bytes()


def test_missing_file_is_404(client):
    response = client.get("/download/nope.txt")
    assert response.status_code == 404


def test_directory_is_404(client):
    assert client.get("/download/sub").status_code == 404
    assert client.get("/download/sub/").status_code == 404
    assert client.get("/download/").status_code == 404


def test_file_removed_after_listing_is_404(client, share_dir):
    assert 'href="/download/a.txt"' in client.get("/").text
    (share_dir / "a.txt").unlink()
    assert client.get("/download/a.txt").status_code == 404


def test_symlink_escaping_root_is_404(client, share_dir, tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("secret")
    try:
        (share_dir / "escape").symlink_to(outside)
    except OSError:
        pytest.skip("Symlinks not supported on this system")

    response = client.get("/download/escape/secret.txt")
    assert response.status_code == 404
    assert b"secret" not in response.content


def test_encoded_traversal_is_404(client, tmp_path):
    (tmp_path / "secret.txt").write_text("secret")
    response = client.get("/download/..%2Fsecret.txt")
    assert response.status_code == 404
    assert b"secret" not in response.content


def test_conditional_requests(client):
    first = client.get("/download/a.txt")
    etag = first.headers["etag"]
    last_modified = first.headers["last-modified"]

    response = client.get("/download/a.txt", headers={"If-None-Match": etag})
    assert response.status_code == 304
    assert response.content == b""

    response = client.get("/download/a.txt", headers={"If-Modified-Since": last_modified})
    assert response.status_code == 304

    response = client.get("/download/a.txt", headers={"If-None-Match": '"other"'})
    assert response.status_code == 200


def test_guard_released_after_each_response(client):
    context = client.app.state.context

    client.get("/download/a.txt")
    assert not context.download_lock.locked()

    client.get("/download/missing.txt")
    assert not context.download_lock.locked()

    client.get("/download/a.txt", headers={"Range": "bytes=9999-"})
    assert not context.download_lock.locked()


def test_listing_does_not_take_guard(client):
    async def scenario():
        context = client.app.state.context
        transport = httpx.ASGITransport(app=client.app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            await context.download_lock.acquire()
            try:
                response = await asyncio.wait_for(http.get("/"), timeout=5)
            finally:
                context.download_lock.release()
        return response

    response = asyncio.run(scenario())
    assert response.status_code == 200


def test_concurrent_downloads_do_not_interleave(client, share_dir):
    payloads = {
        f"big{i}.bin": os.urandom(300 * 1024) for i in range(4)
    }
    for name, data in payloads.items():
        (share_dir / name).write_bytes(data)

    async def scenario():
        transport = httpx.ASGITransport(app=client.app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            requests = [http.get(f"/download/{name}") for name in list(payloads) * 2]
            return await asyncio.wait_for(asyncio.gather(*requests), timeout=30)

    responses = asyncio.run(scenario())

    names = list(payloads) * 2
    for name, response in zip(names, responses):
        assert response.status_code == 200
        assert response.content == payloads[name]

    assert not client.app.state.context.download_lock.locked()


def test_guarded_response_releases_on_error():
    async def scenario():
        lock = asyncio.Lock()
        await lock.acquire()

        async def body():
            yield b"partial"
            raise RuntimeError("disk went away")

        response = GuardedStreamingResponse(body(), lock)

        async def receive():
            await asyncio.sleep(10)
            return {"type": "http.disconnect"}

        async def send(message):
            pass

        scope = {"type": "http", "asgi": {"spec_version": "2.4"}, "method": "GET"}
        with pytest.raises(Exception):
            await response(scope, receive, send)
        return lock.locked()

    assert asyncio.run(scenario()) is False
