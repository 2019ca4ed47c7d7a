import os

from coupon_api.core.app_factory import create_app

app = create_app()


def run() -> None:
    """Serve the app with uvicorn (console entry point)."""
    import uvicorn

    port = int(os.environ.get("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port, access_log=False)


if __name__ == "__main__":
    run()
