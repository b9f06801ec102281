#!/usr/bin/env python3
"""
Tribunal Case Scraper - Main Entry Point

Searches the tribunal case-status portal for one case or a batch of cases
and exports structured case records with their listing history.

Usage:
    python main.py search --bench <bench> [--case-type T] [--case-number N] [--year Y]
    python main.py batch queries.json
"""

from tribunal_scraper.cli.main import main


if __name__ == "__main__":
    main()
