#!/usr/bin/env python3
"""Runner script to start the meetup site."""
import os
import sys

# Add backend to path so a plain checkout runs without installing
script_dir = os.path.dirname(os.path.abspath(__file__))
backend_dir = os.path.join(script_dir, "backend")
sys.path.insert(0, backend_dir)

if __name__ == "__main__":
    import uvicorn

    from meetup.config import AppConfig
    from meetup.logging_config import configure_logging

    config = AppConfig.load_from_env()
    configure_logging(config)

    uvicorn.run(
        "meetup.main:create_app",
        factory=True,
        host=config.api_host,
        port=config.api_port,
        reload=config.env == "dev",
        log_level=config.log_level.lower(),
    )
