# SPDX-License-Identifier: Apache-2.0
"""Pattern detectors and the line scanner."""

from .engine import scan_content, scan_tree

__all__ = ["scan_content", "scan_tree"]
