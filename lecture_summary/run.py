import math

import uvicorn
from dotenv import load_dotenv

from lecture_summary.utils.config import Settings

# Load .env but do not override env vars already set
load_dotenv(override=False)


# Start the server
def start():
    """Launches the Uvicorn server."""
    settings = Settings()
    uvicorn.run(
        "lecture_summary.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        timeout_graceful_shutdown=math.ceil(settings.shutdown_grace_period),
    )


if __name__ == "__main__":
    start()
