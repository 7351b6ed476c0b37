"""Data manager - application bootstrap."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from datamanager.shared.core.configuration import LoggingConfig, get_config_manager
from datamanager.shared.core.event_bus import EventBus
from datamanager.shared.infrastructure.api.api_proxy import ApiProxy
from datamanager.shared.infrastructure.persistence.preferences import PreferenceStore
from datamanager.state.store import Store

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def configure_logging(config: LoggingConfig, project_root: Optional[Path] = None) -> Path:
    """Rotating file log at the configured level, console gets WARNING+.

    Returns:
        Path of the log file
    """
    log_dir = (project_root or Path.cwd()) / config.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file_path = log_dir / "datamanager.log"

    file_log_level = LOG_LEVELS.get(config.level.upper(), logging.DEBUG)

    root_logger = logging.getLogger()
    root_logger.setLevel(file_log_level)
    root_logger.handlers.clear()

    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(file_log_level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    ))
    root_logger.addHandler(console_handler)

    # Suppress verbose third-party library logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.info(f"Logging configured: file={log_file_path}, console=WARNING+")
    return log_file_path


async def init_datamanager(
    host: Any,
    views: Any,
    navigation: Any,
    api: Any = None,
    project_root: Optional[Path] = None,
    is_label_stream: bool = False,
    setup_logging: bool = True,
    **app_options: Any,
) -> Store:
    """Build the global store and run the initial data load.

    Args:
        host: Embedding application (notifications, mode, actions)
        views: Tabs collaborator supplying the selected view
        navigation: History collaborator
        api: Transport; an ApiProxy over the configured backend when omitted
        project_root: Where config/ and .env are looked up
        is_label_stream: Start in label stream loading mode
        setup_logging: Install file and console log handlers
        **app_options: Extra AppStore arguments (interfaces, toolbar)
    """
    root = project_root or Path.cwd()
    load_dotenv(dotenv_path=root / ".env")

    config = get_config_manager(root).get_config()
    if setup_logging:
        configure_logging(config.logging, root)

    store = Store.initialize(
        EventBus(),
        api=api or ApiProxy(config.api),
        host=host,
        views=views,
        navigation=navigation,
        preferences=PreferenceStore(config.storage.preferences_path),
        config=config,
        **app_options,
    )

    if not await store.app.fetch_data(is_label_stream=is_label_stream):
        logger.error("Initial project load failed")

    return store
