"""
Flask routes for the match ledger API.
"""

from flask import jsonify, request

from ledger.elo import leaderboard
from ledger.service import LedgerService, ValidationError
from ledger.store import StorageReadError, StorageWriteError
from web.auth import is_authenticated


def register_routes(app):
    """Register all routes with the Flask app."""

    def get_service():
        """A fresh service per request over the app's single store."""
        return LedgerService(app.extensions['ledger_store'])

    def with_ledger_headers(resp, service):
        resp.headers['X-Ledger-Backend'] = service.backend
        if service.last_read_error is not None:
            resp.headers['X-Ledger-Read-Error'] = '1'
        return resp

    def matches_response(service, matches):
        return with_ledger_headers(jsonify([m.to_dict() for m in matches]), service)

    def error_response(service, message, status):
        resp = with_ledger_headers(jsonify({'error': message}), service)
        resp.status_code = status
        return resp

    @app.route('/api/matches', methods=['GET', 'POST', 'DELETE'])
    @app.route('/matches', methods=['GET', 'POST', 'DELETE'])
    def matches():
        """
        Match ledger.

        GET returns the full ledger as a JSON array, oldest first.

        POST records a new match. Expects JSON body:
        {
            "participantA": "alice",
            "participantB": "bob",
            "outcome": "AWins" | "BWins" | "Draw"
        }

        DELETE removes the match whose recordedAt is given as a query
        parameter (or JSON body field).

        Writes require a signed-in session or X-API-Key, and respond with
        the updated ledger.
        """
        service = get_service()

        if request.method == 'GET':
            return matches_response(service, service.list_matches())

        if not is_authenticated():
            return error_response(service, 'unauthorized', 401)

        try:
            if request.method == 'POST':
                data = request.get_json(silent=True)
                if data is None:
                    return error_response(service, 'missing JSON body', 400)
                updated = service.record_match(data)
            else:
                recorded_at = request.args.get('recordedAt')
                if recorded_at is None:
                    data = request.get_json(silent=True)
                    if isinstance(data, dict):
                        recorded_at = data.get('recordedAt')
                updated = service.delete_match(recorded_at)
        except ValidationError as e:
            return error_response(service, str(e), 400)
        except StorageReadError as e:
            print(f"Error: {e}")
            return error_response(service, 'Failed to read matches', 503)
        except StorageWriteError as e:
            print(f"Error: {e}")
            return error_response(service, 'Failed to save matches', 500)

        return matches_response(service, updated)

    @app.route('/api/ratings')
    def ratings():
        """Current Elo ratings, derived from the full ledger."""
        service = get_service()
        current = service.ratings()
        resp = jsonify({
            'ratings': current,
            'leaderboard': [
                {'participant': participant, 'rating': rating}
                for participant, rating in leaderboard(current)
            ],
        })
        return with_ledger_headers(resp, service)
