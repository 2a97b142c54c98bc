# app/core/exceptions.py
"""Domain errors raised by the services layer and translated to HTTP/WebSocket responses by the API layer."""


class GameError(Exception):
    """Base class for all room/game errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RoomNotFoundError(GameError):
    def __init__(self, room_code: str):
        super().__init__(f"Room {room_code} not found. Please check the room code and try again.")
        self.room_code = room_code


class InvalidRoomCodeError(GameError):
    def __init__(self, raw_code: str):
        super().__init__(f"'{raw_code}' is not a valid room code. Room codes are 6 letters or digits.")
        self.raw_code = raw_code


class InvalidInputError(GameError):
    pass


class PermissionDeniedError(GameError):
    pass


class RoomFullError(GameError):
    pass


class RoomStoreUnavailableError(GameError):
    """The backing room store could not be reached."""

    def __init__(self, message: str = "Room storage is temporarily unavailable."):
        super().__init__(message)
