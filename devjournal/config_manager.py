"""
Configuration management for the developer journal
"""

import json
import logging
import os
import re
import shutil
from pathlib import Path
from typing import Optional

from .models import Config, LOG_LEVELS, SCHEDULE_TIME_PATTERN, WEEKDAYS

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "devjournal"

# Environment variables that take precedence over the config file
ENV_OVERRIDES = {
    'JIRA_BASE_URL': 'jira_url',
    'JIRA_EMAIL': 'jira_email',
    'JIRA_API_TOKEN': 'jira_api_token',
    'DEVJOURNAL_DIR': 'journal_dir',
}


class ConfigurationError(Exception):
    """Raised when there's an issue with configuration"""
    pass


def merge_json_defaults(default_path: Path, user_path: Path) -> bool:
    """Merge keys from ``default_path`` into ``user_path`` without overwriting existing values."""
    if not default_path.exists():
        return False

    if not user_path.exists():
        user_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy(default_path, user_path)
        logger.info(f"Created {user_path} from defaults")
        return True

    with open(default_path, 'r', encoding='utf-8') as f:
        default_data = json.load(f)
    with open(user_path, 'r', encoding='utf-8') as f:
        user_data = json.load(f)

    changed = False

    def merge(d, u):
        nonlocal changed
        for k, v in d.items():
            if k not in u:
                u[k] = v
                changed = True
            elif isinstance(v, dict) and isinstance(u.get(k), dict):
                merge(v, u[k])

    merge(default_data, user_data)

    if changed:
        with open(user_path, 'w', encoding='utf-8') as f:
            json.dump(user_data, f, indent=2, ensure_ascii=False)
        logger.info(f"Updated {user_path} with new settings")

    return changed


def update_config_files(config_path: str) -> bool:
    """Update the user configuration file from the packaged defaults."""
    defaults_dir = Path(__file__).parent / 'defaults'
    return merge_json_defaults(defaults_dir / 'config.json', Path(config_path))


def validate_config_data(config_data: dict) -> None:
    """Validate configuration data structure and values"""
    jira_url = config_data.get('jira_url', '')
    if jira_url and not jira_url.startswith(('http://', 'https://')):
        raise ConfigurationError("Invalid Jira URL format. Must start with http:// or https://")

    if not config_data.get('journal_dir', 'default'):
        raise ConfigurationError("Journal directory cannot be empty")

    log_level = str(config_data.get('log_level', 'INFO')).upper()
    if log_level not in LOG_LEVELS:
        raise ConfigurationError(f"Log level must be one of: {', '.join(LOG_LEVELS)}")

    schedule_config = config_data.get('report_schedule', {})
    schedule_day = schedule_config.get('day', 'monday')
    if schedule_day not in WEEKDAYS:
        raise ConfigurationError(f"Invalid report schedule day: {schedule_day}")

    schedule_time = schedule_config.get('time', '08:00')
    if not isinstance(schedule_time, str) or not re.fullmatch(SCHEDULE_TIME_PATTERN, schedule_time):
        raise ConfigurationError(f"Invalid report schedule time: {schedule_time}. Use HH:MM")


def apply_env_overrides(config_data: dict) -> dict:
    """Return a copy of ``config_data`` with environment values applied"""
    data = dict(config_data)
    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            data[key] = value
    return data


def load_config(config_file: Optional[str] = None) -> Config:
    """Load and validate configuration from JSON file"""
    try:
        config_data = {}
        if config_file and Path(config_file).exists():
            with open(config_file, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
        elif config_file:
            logger.warning(f"Config file {config_file} not found, using defaults")

        config_data = apply_env_overrides(config_data)
        validate_config_data(config_data)

        schedule_config = config_data.get('report_schedule', {})

        return Config(
            journal_dir=config_data.get('journal_dir', '~/Documents/DevJournal'),
            jira_url=config_data.get('jira_url', ''),
            jira_email=config_data.get('jira_email', ''),
            jira_api_token=config_data.get('jira_api_token', ''),
            jira_default_jql=config_data.get('jira_default_jql', 'assignee = currentUser() ORDER BY updated DESC'),
            timestamp_format=config_data.get('timestamp_format', '%d/%m/%Y %H:%M'),
            log_level=config_data.get('log_level', 'INFO'),
            log_file=config_data.get('log_file', 'devjournal.log'),
            report_file_path=config_data.get('report_file_path', 'activity_report.json'),
            # Weekly report export
            report_schedule_day=schedule_config.get('day', 'monday'),
            report_schedule_time=schedule_config.get('time', '08:00')
        )

    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in config file: {e}")
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Error loading config: {e}")


def setup_logging(config: Config) -> None:
    """Setup logging configuration"""
    package_logger = logging.getLogger(PACKAGE_LOGGER)

    # Clear existing handlers
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()

    # Set log level
    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    package_logger.setLevel(log_level)
    package_logger.propagate = False

    # Create formatter
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # File handler
    if config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding='utf-8')
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)
