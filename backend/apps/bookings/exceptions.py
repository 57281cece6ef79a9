from rest_framework import status


class BookingError(Exception):
    """Base class for failures raised by the booking services."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Booking failed'

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_response_data(self):
        data = {'error': self.message}
        if self.details:
            data['details'] = self.details
        return data


class CapacityError(BookingError):
    default_message = 'Insufficient capacity'


class InvalidAddOnError(BookingError):
    default_message = 'Invalid add-on'


class BookingNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Booking not found'
