"""
Main application entry point
"""

import uvicorn
from tasktree.config.settings import settings
from tasktree.utils.logger import logger


def main():
    """Run the API server"""
    settings.validate()
    logger.info(f"Starting TaskTree API on {settings.WEB_HOST}:{settings.WEB_PORT}")
    uvicorn.run(
        "tasktree.web.main:app",
        host=settings.WEB_HOST,
        port=settings.WEB_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
