"""
PunchReport Web Server

Flask API server exposing the report endpoint for the web form.
No credentials are stored - everything is passed per request.
"""

import logging
from datetime import datetime
from flask import Flask, jsonify, request, send_from_directory
from flask_cors import CORS
from pathlib import Path

from .. import __version__
from ..core.config import ReportConfig, Settings, load_settings
from ..core.errors import DiscoveryError, InputError
from ..core.fetcher import JsonFetcher
from ..core.report import failure_message, generate_report

logger = logging.getLogger(__name__)


def default_fetcher_factory(config: ReportConfig) -> JsonFetcher:
    """One fetcher (and HTTP session) per report request."""
    return JsonFetcher(
        retries=config.retries,
        timeout_ms=config.timeout_ms,
        backoff_ms=config.backoff_ms,
    )


def create_app(settings: Settings = None, fetcher_factory=None) -> Flask:
    """
    Create Flask application.

    Args:
        settings: Defaults for request fields (loads saved settings if None)
        fetcher_factory: Callable building a fetcher from a ReportConfig

    Returns:
        Flask app instance
    """
    if settings is None:
        settings = load_settings()
    if fetcher_factory is None:
        fetcher_factory = default_fetcher_factory

    app = Flask(__name__, static_folder='static')
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    app.config['PUNCHREPORT_SETTINGS'] = settings

    @app.route('/api/health')
    def health():
        """Health check endpoint."""
        return jsonify({
            'status': 'ok',
            'timestamp': datetime.now().isoformat(),
            'version': __version__,
        })

    @app.route('/api/report', methods=['POST'])
    def report():
        """
        Generate the daily work report.

        Request body:
        {
            "apiKeyId": "...",
            "apiKeySecret": "...",
            "date": "2024-05-02",
            "baseUrl": "api.example.com",   (optional)
            "shiftHours": 8,                 (optional)
            "authMode": "auto",              (optional)
            "timeoutMs": 15000               (optional)
        }
        """
        payload = request.get_json(silent=True) or {}

        try:
            config = ReportConfig.from_payload(payload, settings)
            config.validate()
        except InputError as e:
            return jsonify({'message': e.message}), 400

        fetcher = fetcher_factory(config)
        try:
            return jsonify(generate_report(config, fetcher))
        except InputError as e:
            return jsonify({'message': e.message}), 400
        except DiscoveryError as e:
            logger.warning("Discovery failed: %s", e.details)
            return jsonify(e.to_dict()), 502
        except Exception as e:
            logger.exception("Report generation failed")
            return jsonify({'message': failure_message(e)}), 500
        finally:
            close = getattr(fetcher, 'close', None)
            if close:
                close()

    # Serve the report form
    @app.route('/')
    def index():
        """Serve main page."""
        static_folder = Path(__file__).parent / 'static'
        if (static_folder / 'index.html').exists():
            return send_from_directory(static_folder, 'index.html')
        else:
            return '''
            <!DOCTYPE html>
            <html>
            <head>
                <title>PunchReport</title>
                <style>
                    body { font-family: system-ui; max-width: 800px; margin: 50px auto; padding: 20px; }
                    h1 { color: #3B82F6; }
                    .card { background: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0; }
                    pre { background: #1e1e1e; color: #fff; padding: 10px; border-radius: 4px; overflow-x: auto; }
                </style>
            </head>
            <body>
                <h1>PunchReport</h1>
                <p>Daily work reports from your time-tracking API.</p>

                <div class="card">
                    <h3>API Endpoints</h3>
                    <ul>
                        <li><code>GET /api/health</code> - Health check</li>
                        <li><code>POST /api/report</code> - Generate a daily report</li>
                    </ul>
                </div>

                <div class="card">
                    <h3>Quick Start</h3>
                    <pre>curl -X POST http://localhost:5000/api/report \\
  -H 'Content-Type: application/json' \\
  -d '{"apiKeyId": "...", "apiKeySecret": "...", "date": "2024-05-02"}'</pre>
                </div>
            </body>
            </html>
            '''

    return app


def run_server(settings: Settings = None, host: str = '127.0.0.1', port: int = 5000,
               debug: bool = False):
    """Run the web server."""
    app = create_app(settings)
    app.run(host=host, port=port, debug=debug)
