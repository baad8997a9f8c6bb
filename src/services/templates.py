"""
Report email templates.

Bodies come from the packaged templates/ directory unless an override with
the same name exists under TEMPLATE_BUCKET. Loaded text is kept for
TEMPLATE_CACHE_TTL seconds so warm invocations skip the lookup.
"""

import logging
import os
import time
from pathlib import Path
from typing import Dict, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from . import s3 as s3_service

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = int(os.environ.get('TEMPLATE_CACHE_TTL', '300'))
TEMPLATE_BUCKET = os.environ.get('TEMPLATE_BUCKET')
TEMPLATE_KEY_PREFIX = os.environ.get('TEMPLATE_KEY_PREFIX', 'templates/')

# src/services/templates.py -> src/templates/
TEMPLATES_DIR = Path(__file__).parent.parent / 'templates'

# template name -> (text, loaded_at)
_loaded: Dict[str, Tuple[str, float]] = {}


def _load_from_filesystem(template_name: str) -> str:
    """
    Read a packaged template.

    Raises:
        FileNotFoundError: If no such template ships with the Lambda
    """
    with open(TEMPLATES_DIR / template_name, 'r', encoding='utf-8') as f:
        return f.read()


def _load_override(template_name: str) -> Optional[str]:
    """Return the S3 override for a template, or None when there is none."""
    if not TEMPLATE_BUCKET:
        return None

    key = f"{TEMPLATE_KEY_PREFIX}{template_name}"
    try:
        content = s3_service.fetch_object(TEMPLATE_BUCKET, key)
    except FileNotFoundError:
        return None
    except (ClientError, BotoCoreError, ValueError) as e:
        logger.warning(f"Ignoring template override s3://{TEMPLATE_BUCKET}/{key}: {e}")
        return None

    logger.info(f"Using template override s3://{TEMPLATE_BUCKET}/{key}")
    return content.decode('utf-8')


def load_template(template_name: str) -> str:
    """
    Return the text of a report template.

    Raises:
        ValueError: If the template is neither overridden nor packaged
    """
    now = time.time()
    cached = _loaded.get(template_name)
    if cached and now - cached[1] < CACHE_TTL_SECONDS:
        return cached[0]

    text = _load_override(template_name)
    if text is None:
        try:
            text = _load_from_filesystem(template_name)
        except FileNotFoundError:
            logger.error(f"Template not found: {TEMPLATES_DIR / template_name}")
            raise ValueError(f"Template '{template_name}' not found in S3 or local filesystem")

    _loaded[template_name] = (text, now)
    return text


def format_template(template: str, **variables) -> str:
    """
    Substitute ``{name}`` fields in a template.

    Values are inserted as-is, so braces inside a domain name stay literal.

    Raises:
        ValueError: If the template uses a variable that was not supplied
    """
    try:
        return template.format(**variables)
    except KeyError as e:
        missing_var = str(e).strip("'")
        raise ValueError(f"Missing required variable in template: {missing_var}")


def clear_cache() -> None:
    _loaded.clear()
