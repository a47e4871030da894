"""Module notify: envoi des notifications d'alerte."""

from station_pompage.notify.mailer import PreviewNotifier, SmtpNotifier, build_notifier

__all__ = ["PreviewNotifier", "SmtpNotifier", "build_notifier"]
