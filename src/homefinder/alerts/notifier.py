"""Alert notification system."""

import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional

from rich.console import Console
from rich.table import Table

from ..config import Settings
from ..config import config as default_config
from ..models.listing import Alert, Listing

logger = logging.getLogger(__name__)
console = Console()


def _format_price(listing: Listing) -> str:
    return f"£{listing.price:,}" if listing.price else "N/A"


class AlertNotifier:
    """Send new-listing alerts to subscribers.

    Supports console output (Rich formatted) and email notifications.

    Example:
        notifier = AlertNotifier()
        notifier.notify_console(alert)

        # With email
        notifier.notify_email(alert, "jane@example.com")
    """

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        settings: Optional[Settings] = None,
        output: Optional[Console] = None,
    ):
        """Initialize notifier with optional SMTP settings.

        Unset arguments fall back to the SMTP_* settings (HOMEFINDER_SMTP_HOST
        or SMTP_HOST, and so on).

        Args:
            smtp_host: SMTP server hostname
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
            settings: Settings to read defaults from
            output: Console to print to (the module console if None)
        """
        settings = settings or default_config
        self.smtp_host = smtp_host or settings.smtp_host
        self.smtp_port = int(smtp_port or settings.smtp_port)
        self.smtp_user = smtp_user or settings.smtp_user
        self.smtp_password = smtp_password or settings.smtp_password
        self.console = output or console

    @property
    def email_configured(self) -> bool:
        return all([self.smtp_host, self.smtp_user, self.smtp_password])

    def notify_console(self, alert: Alert) -> None:
        """Print an alert's new listings with Rich formatting."""
        if not alert.new_listings:
            self.console.print(f"[dim]No new listings for: {alert.client_name}[/dim]")
            return

        self.console.print()
        self.console.print(f"[bold green]Alert: {alert.client_name}[/bold green]")
        self.console.print(f"[dim]Found {alert.total_new} new listings[/dim]")
        self.console.print()

        table = Table(show_header=True, header_style="bold")
        table.add_column("Source")
        table.add_column("Title", max_width=35)
        table.add_column("Location", max_width=30)
        table.add_column("Beds", justify="right")
        table.add_column("Price", justify="right")

        for listing in alert.new_listings:
            table.add_row(
                listing.source,
                listing.title[:35],
                listing.location[:30],
                str(listing.bedrooms) if listing.bedrooms is not None else "-",
                _format_price(listing),
            )

        self.console.print(table)
        self.console.print()

    def generate_report(self, alert: Alert) -> str:
        """Generate a plain text report of an alert."""
        lines = [
            f"Alert: {alert.client_name}",
            f"Date: {alert.timestamp.strftime('%Y-%m-%d %H:%M')}",
            f"Found: {alert.total_new} new listings",
            "",
            "-" * 60,
            "",
        ]

        for listing in alert.new_listings:
            beds = f"{listing.bedrooms} bed" if listing.bedrooms is not None else "beds n/a"
            lines.extend([
                f"{listing.title}",
                f"   {listing.location} | {beds} | {_format_price(listing)}",
                f"   {listing.source}: {listing.url}",
                "",
            ])

        return "\n".join(lines)

    def generate_html_report(self, alert: Alert) -> str:
        """Generate an HTML report for email."""
        rows = []
        for listing in alert.new_listings:
            beds = str(listing.bedrooms) if listing.bedrooms is not None else "-"
            rows.append(f"""
            <tr>
                <td>{escape(listing.source)}</td>
                <td><a href="{escape(listing.url)}">{escape(listing.title)}</a></td>
                <td>{escape(listing.location)}</td>
                <td style="text-align:right;">{beds}</td>
                <td style="text-align:right;">{_format_price(listing)}</td>
            </tr>
            """)

        return f"""
        <html>
        <head>
            <style>
                body {{ font-family: Arial, sans-serif; }}
                table {{ border-collapse: collapse; width: 100%; }}
                th, td {{ border: 1px solid #ddd; padding: 8px; text-align: left; }}
                th {{ background-color: #4a5568; color: white; }}
                tr:nth-child(even) {{ background-color: #f2f2f2; }}
                a {{ color: #3b82f6; text-decoration: none; }}
            </style>
        </head>
        <body>
            <h2>HomeFinder Alert: {escape(alert.client_name)}</h2>
            <p>Found <strong>{alert.total_new}</strong> new listings</p>

            <table>
                <tr>
                    <th>Source</th>
                    <th>Title</th>
                    <th>Location</th>
                    <th>Beds</th>
                    <th>Price</th>
                </tr>
                {"".join(rows)}
            </table>

            <p style="color:#888;margin-top:20px;">
                Generated by HomeFinder on {datetime.now().strftime('%Y-%m-%d %H:%M')}
            </p>
        </body>
        </html>
        """

    def notify_email(self, alert: Alert, recipient: Optional[str]) -> bool:
        """Send an email notification.

        Args:
            alert: Alert to send
            recipient: Destination address

        Returns:
            True if email sent successfully
        """
        if not recipient:
            logger.warning(f"No email configured for {alert.client_name}")
            return False

        if not self.email_configured:
            logger.warning("SMTP not configured, skipping email")
            return False

        if not alert.new_listings:
            logger.info("No new listings, skipping email")
            return False

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = f"HomeFinder: {alert.total_new} new listings for {alert.client_name}"
            msg["From"] = self.smtp_user
            msg["To"] = recipient

            msg.attach(MIMEText(self.generate_report(alert), "plain"))
            msg.attach(MIMEText(self.generate_html_report(alert), "html"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

            logger.info(f"Email sent to {recipient}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email: {e}")
            return False
