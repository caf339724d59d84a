"""Configuration loading and validation for NetEscola+."""

import os
import logging
from typing import Dict, List, Optional
from pathlib import Path
from dotenv import load_dotenv
from rich.logging import RichHandler

# Project root (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / '.env')

DEFAULT_GEMINI_MODELS = [
    'gemini-2.5-flash',
    'gemini-flash-latest',
    'gemini-1.5-flash-latest',
    'gemini-1.5-pro-latest',
    'gemini-1.5-flash',
]

DEFAULT_GEMINI_API_VERSIONS = ['v1beta', 'v1']

# Channel @goiastec.3serie serves Ensino Médio; the EF channel covers 9º ano
DEFAULT_CHANNEL_ID_EM = 'UCwm7h_0nqI8I5I1c5K5q5qw'
DEFAULT_CHANNEL_ID_EF = 'UC7aZ0Ih5lAX3M1rDW5Uj9kA'


def _split_list(value: Optional[str], default: List[str]) -> List[str]:
    if not value:
        return list(default)
    items = [item.strip() for item in value.split(',')]
    return [item for item in items if item] or list(default)


def load_config() -> Dict:
    """Load configuration from environment variables."""
    # Helper function to resolve paths relative to project root
    def resolve_path(path: Optional[str], default_relative: str) -> str:
        if not path:
            return str(PROJECT_ROOT / default_relative)
        if Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    config = {
        # AI keys (both optional, absence means template-only mode)
        'gemini_api_key': os.getenv('GEMINI_API_KEY') or os.getenv('API_KEY'),
        'gemini_api_key_backup': os.getenv('GEMINI_API_KEY_BACKUP'),
        'gemini_models': _split_list(os.getenv('GEMINI_MODELS'), DEFAULT_GEMINI_MODELS),
        'gemini_api_versions': _split_list(os.getenv('GEMINI_API_VERSIONS'), DEFAULT_GEMINI_API_VERSIONS),

        # YouTube Data API (optional, absence means static catalog only)
        'youtube_api_key': os.getenv('YOUTUBE_API_KEY'),
        'youtube_channel_id_ef': os.getenv('YOUTUBE_CHANNEL_ID_EF', DEFAULT_CHANNEL_ID_EF),
        'youtube_channel_id_em': os.getenv('YOUTUBE_CHANNEL_ID_EM', DEFAULT_CHANNEL_ID_EM),

        # AI request pacing
        'ai_min_interval_seconds': float(os.getenv('AI_MIN_INTERVAL_SECONDS', '3.0')),
        'ai_max_concurrent': int(os.getenv('AI_MAX_CONCURRENT', '1')),
        'ai_max_retries': int(os.getenv('AI_MAX_RETRIES', '2')),
        'ai_retry_base_delay': float(os.getenv('AI_RETRY_BASE_DELAY', '2.0')),

        # Caches and validation
        'cache_ttl_seconds': float(os.getenv('CACHE_TTL_SECONDS', str(30 * 60))),
        'synthetic_failure_rate': float(os.getenv('VIDEO_SYNTHETIC_FAILURE_RATE', '0.05')),

        # Grades below this (0-100 scale) count as weak subjects
        'performance_threshold': float(os.getenv('PERFORMANCE_THRESHOLD', '60')),

        # Local key-value store (issue reports, seen notices)
        'database_path': resolve_path(os.getenv('NETESCOLA_DB_PATH'), 'netescola.db'),

        'log_level': os.getenv('LOG_LEVEL', 'INFO'),
    }

    return config


def validate_config(config: Dict) -> List[str]:
    """Validate configuration and return list of problems.

    Missing API keys are reported but only degrade functionality; numeric
    values out of range are real errors.
    """
    errors = []

    if not config.get('gemini_api_key') and not config.get('gemini_api_key_backup'):
        errors.append("GEMINI_API_KEY not set: AI features will use template text only")

    if not config.get('youtube_api_key'):
        errors.append("YOUTUBE_API_KEY not set: channel search disabled, static catalog only")

    if config.get('youtube_channel_id_ef') == config.get('youtube_channel_id_em'):
        errors.append("YOUTUBE_CHANNEL_ID_EF and YOUTUBE_CHANNEL_ID_EM should differ")

    if config.get('ai_max_concurrent', 1) < 1:
        errors.append("AI_MAX_CONCURRENT must be at least 1")

    if config.get('ai_min_interval_seconds', 0) < 0:
        errors.append("AI_MIN_INTERVAL_SECONDS cannot be negative")

    if config.get('ai_max_retries', 0) < 0:
        errors.append("AI_MAX_RETRIES cannot be negative")

    rate = config.get('synthetic_failure_rate', 0)
    if not 0 <= rate <= 1:
        errors.append("VIDEO_SYNTHETIC_FAILURE_RATE must be between 0 and 1")

    threshold = config.get('performance_threshold', 60)
    if not 0 <= threshold <= 100:
        errors.append("PERFORMANCE_THRESHOLD must be between 0 and 100")

    return errors


def is_fatal_config_error(message: str) -> bool:
    """Missing keys are degraded-mode warnings, everything else is fatal."""
    return "not set" not in message


def setup_logging(log_level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """Set up logging with Rich on the console and a plain text log file."""
    # Clear any existing handlers
    logging.root.handlers.clear()

    rich_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False  # Disable markup to avoid conflicts
    )

    log_file = log_file or PROJECT_ROOT / 'netescola.log'
    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=[rich_handler, file_handler],
        format="%(message)s"
    )

    # Suppress noisy third-party loggers
    noisy_loggers = [
        'httpx',
        'google_genai',
        'google_genai.models',
        'googleapiclient.discovery_cache',
        'urllib3.connectionpool',
        'requests.packages.urllib3.connectionpool'
    ]

    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
