"""
Run with: python -m backoffice  OR  uvicorn backoffice.app:app --reload --port 9000
"""

import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "backoffice.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "9000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
