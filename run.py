#!/usr/bin/env python3
"""
run.py — Launch obs-deck without installing.

Usage (from the obs-deck directory):
    python run.py check
    python run.py check --obs-password mypassword
    python run.py run
    python run.py trigger button.json
    python run.py init-config
"""
import sys
from pathlib import Path

# Ensure the project root is on the path
sys.path.insert(0, str(Path(__file__).parent))

from obs_deck.main import app

if __name__ == "__main__":
    app()
