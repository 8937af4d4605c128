#!/usr/bin/env python3
"""Run one generation cycle for the current bucket (testing/debugging)."""

import json
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from doom_index import create_app
from doom_index.extensions import db
from doom_index.services.container import run_generation_once

if __name__ == '__main__':
    app = create_app()

    with app.app_context():
        if '--create-tables' in sys.argv:
            db.create_all()
        result = run_generation_once()
        print(json.dumps(result.to_dict(), indent=2, default=str))
        sys.exit(0 if result.status != 'failed' else 1)
