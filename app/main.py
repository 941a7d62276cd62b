import logging
import os

from app.api.main import app

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=(os.getenv("COPILOT_LOG_LEVEL") or "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    host = os.getenv("COPILOT_HOST", "0.0.0.0")
    port = int(os.getenv("COPILOT_PORT", "8001"))
    uvicorn.run(app, host=host, port=port)
