from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from html import escape
from zoneinfo import ZoneInfo

from app.domain.entities.booking import Booking


@dataclass(frozen=True)
class EmailMessage:
    subject: str
    html: str


def format_ics_timestamp(value: datetime) -> str:
    """Format an instant as an ICS UTC timestamp (YYYYMMDDTHHMMSSZ)."""
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _money(amount) -> str:
    return f"£{amount:.2f}"


def _when(booking: Booking, tz: ZoneInfo) -> str:
    start = booking.start.astimezone(tz)
    end = booking.end.astimezone(tz)
    return f"{start.strftime('%A %d %B %Y, %H:%M')} – {end.strftime('%H:%M')}"


def _treatment_items(booking: Booking) -> str:
    return "".join(
        f"<li>{escape(t.label)} – {_money(t.price)}</li>" for t in booking.treatments
    )


def _ics_block(booking: Booking, uid_domain: str, summary: str, description: str) -> str:
    start = format_ics_timestamp(booking.start)
    end = format_ics_timestamp(booking.end)
    return "\n".join(
        [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            "BEGIN:VEVENT",
            f"UID:{booking.id}@{uid_domain}",
            f"DTSTAMP:{start}",
            f"DTSTART:{start}",
            f"DTEND:{end}",
            f"SUMMARY:{summary}",
            f"DESCRIPTION:{description}",
            "END:VEVENT",
            "END:VCALENDAR",
        ]
    )


def customer_confirmation(booking: Booking, business_name: str, tz: ZoneInfo) -> EmailMessage:
    ics = _ics_block(
        booking,
        uid_domain="bookings.local",
        summary=f"{business_name} Appointment",
        description=f"Your appointment at {business_name}",
    )
    html = f"""
    <h2>Hi {escape(booking.name)},</h2>
    <p>Thank you for booking with {escape(business_name)}! Here are your appointment details:</p>
    <ul>
      <li><strong>Date &amp; Time:</strong> {_when(booking, tz)}</li>
      <li><strong>Treatments:</strong></li>
      <ul>{_treatment_items(booking)}</ul>
      <li><b>Total: </b>{_money(booking.total)}</li>
    </ul>
    <p>Your booking reference is <code>{escape(booking.id)}</code>.</p>
    <p>We look forward to seeing you!</p>
    <p>{escape(business_name)}</p>
    <hr/>
    <a href="data:text/calendar;charset=utf8,{ics}" download="appointment.ics">Add to calendar</a>
    """
    return EmailMessage(subject="Your Appointment Confirmation", html=html)


def manager_notification(booking: Booking, tz: ZoneInfo) -> EmailMessage:
    names = ", ".join(t.name for t in booking.treatments)
    ics = _ics_block(
        booking,
        uid_domain="bookings.local",
        summary=f"Appointment with {booking.name}",
        description=f"Booked Treatments:\\n{names}",
    )
    html = f"""
    <h2>New Booking Received</h2>
    <p><strong>Client:</strong> {escape(booking.name)} ({escape(booking.email)})</p>
    <p><strong>Phone:</strong> {escape(booking.phone)}</p>
    <p><strong>Date &amp; Time:</strong> {_when(booking, tz)}</p>
    <p><strong>Treatments:</strong></p>
    <ul>{_treatment_items(booking)}</ul>
    <p><b>Total: </b>{_money(booking.total)}</p>
    <hr/>
    <pre>{escape(ics)}</pre>
    """
    return EmailMessage(subject="New Appointment Booked", html=html)


def withdrawal_notice(booking: Booking, business_name: str, tz: ZoneInfo, refunded: bool) -> EmailMessage:
    if refunded:
        subject = "Your Appointment Has Been Cancelled and Refunded"
        detail = f"A full refund of {_money(booking.total)} has been issued to your original payment method."
    else:
        subject = "Your Appointment Has Been Cancelled"
        detail = "No payment was taken for this appointment."
    html = f"""
    <h2>Hi {escape(booking.name)},</h2>
    <p>Your appointment on {_when(booking, tz)} has been cancelled.</p>
    <ul>{_treatment_items(booking)}</ul>
    <p>{detail}</p>
    <p>{escape(business_name)}</p>
    """
    return EmailMessage(subject=subject, html=html)
