"""
E-mail notification at the end of a run, through the system ``mail`` command.
"""

import logging
import subprocess
from pathlib import Path

from ..utils.config import get_tool_path


logger = logging.getLogger(__name__)


def send_summary_email(address: str, summary_file: Path, subject: str) -> bool:
    """
    Mail ``summary_file`` to ``address``.

    Returns:
        True if the mail command succeeded, False if it is unavailable or failed
    """
    mail = get_tool_path("mail")
    if mail is None:
        logger.warning(f"'mail' command not available. Summary saved in: {summary_file}")
        return False

    logger.info(f"Sending summary to {address}...")
    with open(summary_file, "r") as f:
        result = subprocess.run(
            [str(mail), "-s", subject, address],
            stdin=f,
            capture_output=True,
            text=True,
            check=False,
        )

    if result.returncode != 0:
        logger.warning(f"mail failed: {result.stderr.strip()}")
        return False
    return True
