from marshmallow.exceptions import ValidationError
from app.core.logger import logger
import redis
from flask_limiter.errors import RateLimitExceeded


class SchedulerError(Exception):
    """Base class for failures of a single plan execution."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InsufficientBalance(SchedulerError):
    pass


class InsufficientUnits(SchedulerError):
    pass


class PriceUnavailable(SchedulerError):
    pass


class AccountNotFound(SchedulerError):
    def __init__(self, user_id):
        super().__init__(f"No demo account for user {user_id}")


class ConcurrentLedgerUpdate(SchedulerError):
    """A compare-and-set update on a balance or holding matched no row."""


class UnsupportedFrequency(SchedulerError):
    """Corrupted scheduling data; never defaulted to another frequency."""

    def __init__(self, frequency):
        super().__init__(f"Unsupported frequency: {frequency}")
        self.frequency = frequency


class InvalidStatusTransition(SchedulerError):
    def __init__(self, current, requested):
        super().__init__(
            f"Invalid plan status transition: {getattr(current, 'value', current)} "
            f"-> {getattr(requested, 'value', requested)}"
        )


class PlanNotFound(SchedulerError):
    def __init__(self, plan_id):
        super().__init__(f"Scheduled plan {plan_id} not found")


def _format_validation_messages(messages):
    if isinstance(messages, dict):
        return {
            field: msgs[0] if isinstance(msgs, list) else msgs
            for field, msgs in messages.items()
        }
    if isinstance(messages, list):
        return messages[0] if messages else "validation_failed"
    return str(messages)


def setup_exception_handlers(application):
    """Configure exception handlers for the application."""

    @application.errorhandler(ValidationError)
    def process_validation_failure(error):
        """Process Marshmallow schema validation failures"""
        processed_errors = _format_validation_messages(error.messages)
        logger.warning(f"Input validation failed: {processed_errors}")
        return {"error": processed_errors}, 400

    @application.errorhandler(PlanNotFound)
    def process_plan_missing(error):
        logger.info(f"Plan lookup failed: {error.message}")
        return {"error": error.message}, 404

    @application.errorhandler(SchedulerError)
    def process_scheduler_conflict(error):
        logger.warning(f"Scheduler request rejected: {error.message}")
        return {"error": error.message}, 409

    @application.errorhandler(404)
    def process_resource_missing(error):
        """Process 404 Resource Missing errors"""
        logger.info(f"Resource unavailable: {str(error)}")
        return {"error": "Resource Not Found"}, 404

    @application.errorhandler(RateLimitExceeded)
    def process_rate_limited(error):
        logger.warning(f"Rate limit exceeded: {error.description}")
        return {"error": f"Too many requests: {error.description}"}, 429

    @application.errorhandler(redis.RedisError)
    def handle_redis_error(error):
        """Handle Redis connection and operational errors"""
        logger.error(f"Redis error: {str(error)}", exc_info=True)
        return {
            "error": "Service temporarily unavailable. Please try again later."
        }, 503

    @application.errorhandler(Exception)
    def process_system_error(error):
        """Process all other unexpected system errors"""
        logger.error(f"System error occurred: {str(error)}", exc_info=True)
        return {"error": str(error)}, 500
