"""
smarthome_cli/scripts.py

Lookups against the caller's personal script list.
"""
import logging
from typing import List, Optional

from smarthome_cli.client import ApiError, SmarthomeClient
from smarthome_cli.errors import classify_api_error
from smarthome_cli.models import HomescriptData

logger = logging.getLogger(__name__)


def list_scripts(client: SmarthomeClient) -> List[HomescriptData]:
    try:
        scripts = client.list_personal_homescripts()
    except ApiError as err:
        raise classify_api_error(err, "personal scripts")
    logger.debug("Fetched %d personal script(s)", len(scripts))
    return scripts


def find_script(client: SmarthomeClient, script_id: str) -> Optional[HomescriptData]:
    for script in list_scripts(client):
        if script.id == script_id:
            return script
    return None
