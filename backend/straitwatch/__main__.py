"""Run the relay (``python -m straitwatch``) or the bridge (``python -m straitwatch bridge``)."""

import sys

import uvicorn

from straitwatch.config import get_settings


def main(argv: list[str]) -> None:
    settings = get_settings()

    if argv and argv[0] == "bridge":
        from straitwatch.bridge import create_bridge_app
        from straitwatch.main import configure_logging

        configure_logging(settings)
        uvicorn.run(create_bridge_app(settings), host=settings.host, port=settings.bridge_port)
        return

    from straitwatch.main import create_asgi_app

    uvicorn.run(create_asgi_app(settings), host=settings.host, port=settings.port)


def run() -> None:
    main(sys.argv[1:])


if __name__ == "__main__":
    run()
