#!/usr/bin/env python3
"""
Flask application for the match ledger API.
"""

import os
from pathlib import Path
from flask import Flask
from dotenv import load_dotenv

# Load environment variables from project root
project_root = Path(__file__).parent.parent
load_dotenv(project_root / '.env')

from ledger.store import select_store


def create_app(store=None):
    """
    Application factory.

    Args:
        store: Ledger backend to serve. When omitted, one is selected from
            the environment; the same instance serves every request.
    """
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'dev-key-change-in-production')
    app.config['LEDGER_API_KEY'] = os.getenv('LEDGER_API_KEY')

    app.extensions['ledger_store'] = store if store is not None else select_store()

    # Register routes (import here to avoid circular imports)
    from web import routes
    routes.register_routes(app)

    return app


if __name__ == '__main__':
    app = create_app()
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port)
