from onward.response import Response


def test_defaults():
    response = Response().finish()

    assert response.status_code == 200
    assert response.body == b""
    assert response.headers["content-type"] == "text/html; charset=utf-8"


def test_write_appends_to_body():
    res = Response()

    assert res.write("Hello, ") == 7
    res.write(b"World")

    assert res.body == b"Hello, World"
    assert res.finish().headers["content-length"] == "12"


def test_header_access():
    res = Response({"Content-Type": "text/plain"})
    res["X-Frame-Options"] = "DENY"

    assert res["content-type"] == "text/plain"
    assert res["Missing"] is None

    del res["X-Frame-Options"]
    assert "x-frame-options" not in res.finish().headers


def test_redirect():
    res = Response()
    res.redirect("/login")

    response = res.finish()

    assert response.status_code == 302
    assert response.headers["location"] == "/login"


def test_redirect_with_status():
    res = Response()
    res.redirect("/moved", status=301)

    assert res.finish().status_code == 301


def test_cookies():
    res = Response()
    res.set_cookie("uid", "42", httponly=True)
    res.delete_cookie("old")

    cookies = res.finish().headers.getlist("set-cookie")

    assert len(cookies) == 2
    assert cookies[0].startswith("uid=42")
    assert "HttpOnly" in cookies[0]
    assert cookies[1].startswith("old=")
    assert "Max-Age=0" in cookies[1]
