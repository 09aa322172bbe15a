#!/usr/bin/env python3
"""
Output Formatting Module for the bwt CLI

Renders command results as a key/value table, JSON or YAML.
"""

import json
from typing import Any, List

import yaml
from tabulate import tabulate


class OutputFormatter:
    """Output formatter for CLI results."""

    def __init__(self, format_type: str = 'table'):
        """
        Initialize output formatter.

        Args:
            format_type: Output format (table, json, yaml)
        """
        self.format_type = format_type

    def format(self, data: Any) -> str:
        """
        Format data according to the configured format type.

        Args:
            data: Data to format

        Returns:
            Formatted string output
        """
        if self.format_type == 'json':
            return self.format_json(data)
        elif self.format_type == 'yaml':
            return self.format_yaml(data)
        return self.format_table(data)

    def format_json(self, data: Any) -> str:
        """Format data as JSON."""
        return json.dumps(data, indent=2, default=str)

    def format_yaml(self, data: Any) -> str:
        """Format data as YAML."""
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False).rstrip('\n')

    def format_table(self, data: Any) -> str:
        """Format data as a key/value table, flattening nested mappings."""
        if isinstance(data, dict):
            rows: List[List[str]] = []
            self._table_rows(data, '', rows)
            return tabulate(rows, tablefmt='plain', disable_numparse=True)
        if isinstance(data, list):
            return '\n'.join(str(item) for item in data)
        return str(data)

    def _table_rows(self, data: dict, prefix: str, rows: List[List[str]]):
        for key, value in data.items():
            name = f"{prefix}{key}"
            if isinstance(value, dict) and value:
                self._table_rows(value, f"{name}.", rows)
            elif isinstance(value, list):
                rows.append([name, ', '.join(str(item) for item in value)])
            else:
                rows.append([name, '' if value is None else str(value)])
