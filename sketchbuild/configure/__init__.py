# SPDX-License-Identifier: MIT
"""Installed packages, user settings and configuration resolution."""
