# SPDX-License-Identifier: MIT
"""Core data model: properties, placeholder expansion, sketches and errors."""
