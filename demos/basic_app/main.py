import asyncio

from starlette.middleware.sessions import SessionMiddleware

from onward.app import App
from onward.dispatch import Dispatch

app = App(settings={"site_name": "onward demo"})
app.use(SessionMiddleware, secret_key="change-me")


class Layout:
    def page(self, title: str, body: str):
        self.res.write(f"<h1>{title} - {self.settings['site_name']}</h1>{body}")


app.plugin(Layout)

api = App()


@api.define
def api_routes(c: Dispatch):
    @c.on(c.get, "users/:id", c.accept("application/json"))
    def _(user_id):
        c.res.write(f'{{"id": "{user_id}"}}')

    @c.on(c.default)
    def _():
        c.res.status = 404
        c.res.write('{"error": "not found"}')


@app.define
def site(c: Dispatch):
    @c.on(c.get, "")
    def _():
        c.page("Home", "<p>Hello from onward!</p>")

    @c.on("api")
    def _():
        c.run(api)

    @c.on("login", c.param("user"))
    def _(user="guest"):
        c.session["user"] = user
        c.res.redirect("/account")

    @c.on(c.get, "account")
    def _():
        if "user" not in c.session:
            c.res.redirect("/login?user=guest")
            c.halt(c.res.finish())

        c.page("Account", f"<p>Signed in as {c.session['user']}</p>")

    @c.on(c.get, "styles", c.extension("css"))
    def _(name):
        c.res["Content-Type"] = "text/css"
        c.res.write(f"/* {name} */ body {{ font-family: sans-serif; }}")


# If the script is run directly, start the Uvicorn server
if __name__ == "__main__":

    async def main():
        try:
            import uvicorn
        except ImportError:
            print("Uvicorn is not installed. Please install it with: pip install uvicorn")
            return

        print("Starting onward basic demo on http://127.0.0.1:8000")
        print("Press Ctrl+C to stop.")

        config = uvicorn.Config(app, host="127.0.0.1", port=8000, loop="asyncio")
        server = uvicorn.Server(config)
        await server.serve()

    asyncio.run(main())
