import logging

from notifypy import Notify


class NotificationHelper:

    @staticmethod
    def send_notification(title, message):
        notification = Notify()

        notification.title = title
        notification.message = message
        try:
            notification.send()
        except Exception as e:
            # Headless machines (cron, launchd) often have no notification backend
            logging.warning(f"  - Could not send notification: {e}")
