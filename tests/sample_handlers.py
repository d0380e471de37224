"""Handlers imported by the configuration tests."""


def site(c):
    @c.on(c.get, "hello/:name")
    def _(name):
        c.res.write(f"{c.settings.get('greeting', 'Hello')}, {name}")
