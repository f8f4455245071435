from __future__ import annotations

from flask import Blueprint, Response

from .models import (
    BikeListParams,
    CompleteReminderCommand,
    CreateBikeCommand,
    CreateLocationCommand,
    CreateReminderCommand,
    CreateServiceCommand,
    LocationListParams,
    ReminderListParams,
    ServiceListParams,
    ServiceStatsParams,
    UpdateBikeCommand,
    UpdateLocationCommand,
    UpdateMileageCommand,
    UpdateProfileCommand,
    UpdateServiceCommand,
    parse_identifier,
)
from .services.bike_service import BikeService
from .services.location_service import LocationService
from .services.profile_service import ProfileService
from .services.reminder_service import ReminderService
from .services.service_record_service import ServiceRecordService
from .utils.responses import RequestContext, handle_request, query_args, read_json_body

api_bp = Blueprint('api', __name__, url_prefix='/api')


# ---------------------------------------------------------------------------
# Default intervals
# ---------------------------------------------------------------------------
@api_bp.route('/default-intervals', methods=['GET'])
def list_default_intervals() -> Response:
    def operation(ctx: RequestContext):
        return ReminderService(ctx.store).list_default_intervals()

    return handle_request(operation, failure_message='Failed to fetch default intervals')


# ---------------------------------------------------------------------------
# Bikes
# ---------------------------------------------------------------------------
@api_bp.route('/bikes', methods=['GET'])
def list_bikes() -> Response:
    def operation(ctx: RequestContext):
        params = BikeListParams.model_validate(query_args())
        return BikeService(ctx.store).list_bikes(ctx.user_id, params)

    return handle_request(operation, failure_message='Failed to fetch bikes')


@api_bp.route('/bikes', methods=['POST'])
def create_bike() -> Response:
    def operation(ctx: RequestContext):
        command = CreateBikeCommand.model_validate(read_json_body())
        return BikeService(ctx.store).create_bike(ctx.user_id, command)

    return handle_request(operation, success_status=201, failure_message='Failed to create bike')


@api_bp.route('/bikes/<bike_id>', methods=['GET'])
def get_bike(bike_id: str) -> Response:
    def operation(ctx: RequestContext):
        return BikeService(ctx.store).get_bike(ctx.user_id, parse_identifier(bike_id, 'bike ID'))

    return handle_request(operation, failure_message='Failed to fetch bike')


@api_bp.route('/bikes/<bike_id>', methods=['PUT'])
def update_bike(bike_id: str) -> Response:
    def operation(ctx: RequestContext):
        bike_uuid = parse_identifier(bike_id, 'bike ID')
        command = UpdateBikeCommand.model_validate(read_json_body())
        return BikeService(ctx.store).update_bike(ctx.user_id, bike_uuid, command)

    return handle_request(operation, failure_message='Failed to update bike')


@api_bp.route('/bikes/<bike_id>', methods=['DELETE'])
def delete_bike(bike_id: str) -> Response:
    def operation(ctx: RequestContext):
        return BikeService(ctx.store).delete_bike(ctx.user_id, parse_identifier(bike_id, 'bike ID'))

    return handle_request(operation, failure_message='Failed to delete bike')


@api_bp.route('/bikes/<bike_id>/mileage', methods=['PATCH'])
def update_bike_mileage(bike_id: str) -> Response:
    def operation(ctx: RequestContext):
        bike_uuid = parse_identifier(bike_id, 'bike ID')
        command = UpdateMileageCommand.model_validate(read_json_body())
        return BikeService(ctx.store).update_mileage(ctx.user_id, bike_uuid, command)

    return handle_request(operation, failure_message='Failed to update mileage')


# ---------------------------------------------------------------------------
# Service records
# ---------------------------------------------------------------------------
@api_bp.route('/bikes/<bike_id>/services', methods=['GET'])
def list_services(bike_id: str) -> Response:
    def operation(ctx: RequestContext):
        bike_uuid = parse_identifier(bike_id, 'bike ID')
        params = ServiceListParams.model_validate(query_args())
        return ServiceRecordService(ctx.store).list_services(ctx.user_id, bike_uuid, params)

    return handle_request(operation, failure_message='Failed to fetch service records')


@api_bp.route('/bikes/<bike_id>/services', methods=['POST'])
def create_service(bike_id: str) -> Response:
    def operation(ctx: RequestContext):
        bike_uuid = parse_identifier(bike_id, 'bike ID')
        command = CreateServiceCommand.model_validate(read_json_body())
        return ServiceRecordService(ctx.store).create_service(ctx.user_id, bike_uuid, command)

    return handle_request(operation, success_status=201, failure_message='Failed to create service record')


@api_bp.route('/bikes/<bike_id>/services/stats', methods=['GET'])
def service_stats(bike_id: str) -> Response:
    def operation(ctx: RequestContext):
        bike_uuid = parse_identifier(bike_id, 'bike ID')
        params = ServiceStatsParams.model_validate(query_args())
        return ServiceRecordService(ctx.store).get_stats(ctx.user_id, bike_uuid, params)

    return handle_request(operation, failure_message='Failed to fetch service statistics')


@api_bp.route('/bikes/<bike_id>/services/<service_id>', methods=['GET'])
def get_service(bike_id: str, service_id: str) -> Response:
    def operation(ctx: RequestContext):
        bike_uuid = parse_identifier(bike_id, 'bike ID')
        service_uuid = parse_identifier(service_id, 'service ID')
        return ServiceRecordService(ctx.store).get_service(ctx.user_id, bike_uuid, service_uuid)

    return handle_request(operation, failure_message='Failed to fetch service record')


@api_bp.route('/bikes/<bike_id>/services/<service_id>', methods=['PUT'])
def update_service(bike_id: str, service_id: str) -> Response:
    def operation(ctx: RequestContext):
        bike_uuid = parse_identifier(bike_id, 'bike ID')
        service_uuid = parse_identifier(service_id, 'service ID')
        command = UpdateServiceCommand.model_validate(read_json_body())
        return ServiceRecordService(ctx.store).update_service(ctx.user_id, bike_uuid, service_uuid, command)

    return handle_request(operation, failure_message='Failed to update service record')


@api_bp.route('/bikes/<bike_id>/services/<service_id>', methods=['DELETE'])
def delete_service(bike_id: str, service_id: str) -> Response:
    def operation(ctx: RequestContext):
        bike_uuid = parse_identifier(bike_id, 'bike ID')
        service_uuid = parse_identifier(service_id, 'service ID')
        return ServiceRecordService(ctx.store).delete_service(ctx.user_id, bike_uuid, service_uuid)

    return handle_request(operation, failure_message='Failed to delete service record')


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------
@api_bp.route('/bikes/<bike_id>/reminders', methods=['GET'])
def list_reminders(bike_id: str) -> Response:
    def operation(ctx: RequestContext):
        bike_uuid = parse_identifier(bike_id, 'bike ID')
        params = ReminderListParams.model_validate(query_args())
        return ReminderService(ctx.store).list_reminders(ctx.user_id, bike_uuid, params)

    return handle_request(operation, failure_message='Failed to fetch reminders')


@api_bp.route('/bikes/<bike_id>/reminders', methods=['POST'])
def create_reminder(bike_id: str) -> Response:
    def operation(ctx: RequestContext):
        bike_uuid = parse_identifier(bike_id, 'bike ID')
        command = CreateReminderCommand.model_validate(read_json_body())
        return ReminderService(ctx.store).create_reminder(ctx.user_id, bike_uuid, command)

    return handle_request(operation, success_status=201, failure_message='Failed to create reminder')


@api_bp.route('/bikes/<bike_id>/reminders/<reminder_id>/complete', methods=['PUT'])
def complete_reminder(bike_id: str, reminder_id: str) -> Response:
    def operation(ctx: RequestContext):
        bike_uuid = parse_identifier(bike_id, 'bike ID')
        reminder_uuid = parse_identifier(reminder_id, 'reminder ID')
        command = CompleteReminderCommand.model_validate(read_json_body())
        return ReminderService(ctx.store).complete_reminder(ctx.user_id, bike_uuid, reminder_uuid, command)

    return handle_request(operation, failure_message='Failed to complete reminder')


@api_bp.route('/bikes/<bike_id>/reminders/<reminder_id>', methods=['DELETE'])
def delete_reminder(bike_id: str, reminder_id: str) -> Response:
    def operation(ctx: RequestContext):
        bike_uuid = parse_identifier(bike_id, 'bike ID')
        reminder_uuid = parse_identifier(reminder_id, 'reminder ID')
        return ReminderService(ctx.store).delete_reminder(ctx.user_id, bike_uuid, reminder_uuid)

    return handle_request(operation, failure_message='Failed to delete reminder')


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------
@api_bp.route('/locations', methods=['GET'])
def list_locations() -> Response:
    def operation(ctx: RequestContext):
        params = LocationListParams.model_validate(query_args())
        return LocationService(ctx.store).list_locations(ctx.user_id, params.default_only)

    return handle_request(operation, failure_message='Failed to fetch locations')


@api_bp.route('/locations', methods=['POST'])
def create_location() -> Response:
    def operation(ctx: RequestContext):
        command = CreateLocationCommand.model_validate(read_json_body())
        return LocationService(ctx.store).create_location(ctx.user_id, command)

    return handle_request(operation, success_status=201, failure_message='Failed to create location')


@api_bp.route('/locations/<location_id>', methods=['PUT'])
def update_location(location_id: str) -> Response:
    def operation(ctx: RequestContext):
        location_uuid = parse_identifier(location_id, 'location ID')
        command = UpdateLocationCommand.model_validate(read_json_body())
        return LocationService(ctx.store).update_location(ctx.user_id, location_uuid, command)

    return handle_request(operation, failure_message='Failed to update location')


@api_bp.route('/locations/<location_id>', methods=['DELETE'])
def delete_location(location_id: str) -> Response:
    def operation(ctx: RequestContext):
        location_uuid = parse_identifier(location_id, 'location ID')
        return LocationService(ctx.store).delete_location(ctx.user_id, location_uuid)

    return handle_request(operation, failure_message='Failed to delete location')


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------
@api_bp.route('/profile', methods=['GET'])
def get_profile() -> Response:
    def operation(ctx: RequestContext):
        return ProfileService(ctx.store).get_profile(ctx.user_id)

    return handle_request(operation, failure_message='Failed to fetch profile')


@api_bp.route('/profile', methods=['PUT'])
def update_profile() -> Response:
    def operation(ctx: RequestContext):
        command = UpdateProfileCommand.model_validate(read_json_body())
        return ProfileService(ctx.store).update_profile(ctx.user_id, command)

    return handle_request(operation, failure_message='Failed to update profile')


@api_bp.route('/profile/export', methods=['GET'])
def export_profile() -> Response:
    def operation(ctx: RequestContext):
        return ProfileService(ctx.store).export_data(ctx.user_id)

    return handle_request(operation, failure_message='Failed to export user data')
