"""Diagnostic endpoints for local development.

The blueprint is only registered when ``ENABLE_DEV_ROUTES`` is set at startup
and never in production (see :func:`bikecare.create_app`). Every route still
goes through the normal authorization and error handling path.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response

from .models import parse_identifier
from .services.profile_service import ProfileService, to_profile_dto
from .services.reminder_service import ReminderService
from .services.store import Query
from .utils.responses import RequestContext, handle_request

dev_bp = Blueprint('dev', __name__, url_prefix='/api')

logger = logging.getLogger(__name__)

MOCK_DEFAULT_INTERVALS = [
    {
        'service_type': 'lancuch',
        'default_interval_km': 3000,
        'description': 'wymiana łańcucha co 3000 km',
        'created_at': '2025-01-01T00:00:00Z',
        'updated_at': '2025-01-01T00:00:00Z',
    },
    {
        'service_type': 'kaseta',
        'default_interval_km': 9000,
        'description': 'wymiana kasety co 9000 km (3 łańcuchy)',
        'created_at': '2025-01-01T00:00:00Z',
        'updated_at': '2025-01-01T00:00:00Z',
    },
]


@dev_bp.route('/test-auth', methods=['GET'])
def test_auth() -> Response:
    def operation(ctx: RequestContext):
        return {
            'message': 'Authentication successful',
            'userId': ctx.user_id,
            'endpoint': 'GET /api/test-auth',
        }

    return handle_request(operation)


@dev_bp.route('/test-simple', methods=['GET'])
def test_simple() -> Response:
    def operation(ctx: RequestContext):
        ctx.store.fetch(Query('profiles', columns='id').page(1))
        return {'status': 'ok', 'connected': True}

    return handle_request(operation, failure_message='Database connection failed')


@dev_bp.route('/test-rpc', methods=['GET'])
def test_rpc() -> Response:
    def operation(ctx: RequestContext):
        data = ctx.store.rpc('get_auth_users_count', {})
        return {'success': True, 'message': 'RPC function works', 'data': data}

    return handle_request(operation, failure_message='RPC function failed')


@dev_bp.route('/bikes/<bike_id>/services/test', methods=['GET'])
def test_services(bike_id: str) -> Response:
    def operation(ctx: RequestContext):
        return {
            'message': 'Service endpoint reachable',
            'userId': ctx.user_id,
            'bikeId': parse_identifier(bike_id, 'bike ID'),
        }

    return handle_request(operation)


@dev_bp.route('/bikes/<bike_id>/services/test-mock', methods=['GET'])
def test_services_mock(bike_id: str) -> Response:
    def operation(ctx: RequestContext):
        return {
            'services': [],
            'total': 0,
            'has_more': False,
            'message': 'Mock service history',
            'userId': ctx.user_id,
            'bikeId': parse_identifier(bike_id, 'bike ID'),
        }

    return handle_request(operation)


@dev_bp.route('/default-intervals-simple', methods=['GET'])
def default_intervals_simple() -> Response:
    def operation(ctx: RequestContext):
        return ReminderService(ctx.store).list_default_intervals()

    return handle_request(operation, failure_message='Failed to fetch default intervals')


@dev_bp.route('/default-intervals-mock', methods=['GET'])
def default_intervals_mock() -> Response:
    return handle_request(lambda ctx: MOCK_DEFAULT_INTERVALS)


@dev_bp.route('/debug-locations', methods=['GET'])
def debug_locations() -> Response:
    def operation(ctx: RequestContext):
        rows = ctx.store.fetch(Query('user_locations').eq('user_id', ctx.user_id)).rows
        return {'userId': ctx.user_id, 'count': len(rows), 'data': rows}

    return handle_request(operation, failure_message='Failed to fetch locations')


@dev_bp.route('/debug-profiles', methods=['GET'])
def debug_profiles() -> Response:
    def operation(ctx: RequestContext):
        rows = ctx.store.fetch(Query('profiles', columns='id, display_name').page(5)).rows
        return {'count': len(rows), 'profiles': rows}

    return handle_request(operation, failure_message='Failed to fetch profiles')


def _first_profile(ctx: RequestContext):
    return ctx.store.fetch_one(Query('profiles', columns='id, display_name'))


@dev_bp.route('/find-real-user', methods=['GET'])
def find_real_user() -> Response:
    def operation(ctx: RequestContext):
        profile = _first_profile(ctx)
        return {
            'realUserFound': profile is not None,
            'realUserId': profile.get('id') if profile else None,
        }

    return handle_request(operation, failure_message='Failed to look up users')


@dev_bp.route('/check-existing-users', methods=['GET'])
def check_existing_users() -> Response:
    def operation(ctx: RequestContext):
        rows = ctx.store.fetch(Query('profiles', columns='id, display_name').page(3)).rows
        return {
            'hasUsers': bool(rows),
            'profiles': {'count': len(rows), 'data': rows},
        }

    return handle_request(operation, failure_message='Failed to look up users')


@dev_bp.route('/create-mock-profile', methods=['POST'])
def create_mock_profile() -> Response:
    def operation(ctx: RequestContext):
        existing = ctx.store.fetch_one(Query('profiles').eq('id', ctx.user_id))
        if existing is not None:
            return {'created': False, 'profile': to_profile_dto(existing)}, 200

        profile = ProfileService(ctx.store).create_placeholder_profile(ctx.user_id)
        logger.info('dev.mock_profile.created', extra={'user_id': ctx.user_id})
        return {'created': True, 'profile': profile}

    return handle_request(operation, success_status=201, failure_message='Failed to create mock profile')
