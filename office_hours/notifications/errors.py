class NotificationError(Exception):
    """Base class for booking notification failures."""


class MailConfigurationError(NotificationError):
    def __init__(self, missing_settings: list[str]):
        self.missing_settings = missing_settings
        super().__init__(f"Mail relay configuration incomplete: {', '.join(missing_settings)}")


class NotificationDeliveryError(NotificationError):
    pass
