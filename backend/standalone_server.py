import os

from reqdeck.main import create_app

if __name__ == "__main__":
    import uvicorn

    host = os.getenv("REQDECK_HOST", "127.0.0.1")
    port = int(os.getenv("REQDECK_PORT", "4010"))
    uvicorn.run(create_app(), host=host, port=port, log_level="info")
