"""Parsers turning theater web pages into screening records."""
