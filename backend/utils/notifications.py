import os
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from twilio.rest import Client
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# --- Email Configuration ---
SMTP_SERVER = os.getenv("SMTP_SERVER")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
EMAIL_SENDER = os.getenv("EMAIL_SENDER")

# --- Twilio Configuration ---
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")

APP_NAME = os.getenv("APP_NAME", "Packaging Supply Platform")


def send_email(to_email: str, subject: str, body_html: str):
    """Sends an email using SMTP."""
    if not all([SMTP_SERVER, SMTP_PORT, SMTP_USER, SMTP_PASSWORD, EMAIL_SENDER]):
        logger.error("SMTP settings are not fully configured. Cannot send email.")
        return False

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = EMAIL_SENDER
    message["To"] = to_email
    message.attach(MIMEText(body_html, "html"))

    try:
        with smtplib.SMTP(SMTP_SERVER, SMTP_PORT) as server:
            server.starttls()
            server.login(SMTP_USER, SMTP_PASSWORD)
            server.sendmail(EMAIL_SENDER, to_email, message.as_string())
        logger.info(f"Email sent successfully to {to_email}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def send_sms(to_phone_number: str, body: str):
    """Sends an SMS using Twilio."""
    if not all([TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER]):
        logger.error("Twilio settings are not fully configured. Cannot send SMS.")
        return False

    try:
        client = Client(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN)
        message = client.messages.create(
            body=body,
            from_=TWILIO_PHONE_NUMBER,
            to=to_phone_number
        )
        logger.info(f"SMS sent successfully to {to_phone_number}, SID: {message.sid}")
        return True
    except Exception as e:
        logger.error(f"Failed to send SMS to {to_phone_number}: {e}")
        return False


def notify_user(email: Optional[str], phone: Optional[str], subject: str, body_html: str, sms_body: str):
    """Best effort delivery on every channel the user has. Meant for BackgroundTasks."""
    if email:
        send_email(email, subject, body_html)
    if phone:
        send_sms(phone, sms_body)


# Email Templates
def get_order_decided_email(order_data: dict) -> tuple[str, str]:
    """Order approved or rejected by the platform"""
    approved = order_data['status'] == "APPROVED"
    verdict = "Approved" if approved else "Rejected"

    subject = f"Order {verdict} - Order #{str(order_data['id'])[:8]}"

    reason_line = ""
    if not approved and order_data.get('reject_reason'):
        reason_line = f"<p><strong>Reason:</strong> {order_data['reject_reason']}</p>"

    body = f"""
    <html>
    <body>
        <h2>Order {verdict}</h2>
        <p>Hello {order_data.get('manufacturer_name', '')},</p>
        <p>Your packaging order has been reviewed by the platform.</p>

        <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px;">
            <h3>Order Details:</h3>
            <p><strong>Order ID:</strong> {order_data['id']}</p>
            <p><strong>Product:</strong> {order_data.get('product_name', 'N/A')}</p>
            <p><strong>Quantity:</strong> {order_data['quantity']}</p>
            <p><strong>Expected Date:</strong> {order_data.get('expected_date', 'N/A')}</p>
            {reason_line}
        </div>

        <p>Best regards,<br>{APP_NAME}</p>
    </body>
    </html>
    """

    return subject, body


def get_order_shipped_email(order_data: dict) -> tuple[str, str]:
    """Order shipped by the supplier"""
    logistics = order_data.get('logistics') or {}
    subject = f"Order Shipped - Order #{str(order_data['id'])[:8]}"

    body = f"""
    <html>
    <body>
        <h2>Your Order Is On Its Way</h2>
        <p>Hello {order_data.get('manufacturer_name', '')},</p>
        <p>The supplier has shipped your order.</p>

        <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px;">
            <h3>Shipment Details:</h3>
            <p><strong>Product:</strong> {order_data.get('product_name', 'N/A')}</p>
            <p><strong>Quantity:</strong> {order_data['quantity']}</p>
            <p><strong>Carrier:</strong> {logistics.get('company', 'N/A')}</p>
            <p><strong>Tracking Number:</strong> {logistics.get('tracking_number', 'N/A')}</p>
            <p><strong>Batch Code:</strong> {logistics.get('batch_code', 'N/A')}</p>
            <p><strong>Estimated Arrival:</strong> {logistics.get('estimated_arrival_date', 'N/A')}</p>
        </div>

        <p>Please confirm receipt once the goods arrive.</p>
        <p>Best regards,<br>{APP_NAME}</p>
    </body>
    </html>
    """

    return subject, body


def get_password_reset_email(user_name: str, reset_link: str) -> tuple[str, str]:
    subject = "Password Reset Request"

    body = f"""
    <html>
    <body>
        <h2>Password Reset</h2>
        <p>Hello {user_name},</p>
        <p>A password reset was requested for your account. Use the link below to choose a new password:</p>
        <p><a href="{reset_link}">{reset_link}</a></p>
        <p>If you did not request this, you can ignore this email.</p>
        <p>Best regards,<br>{APP_NAME}</p>
    </body>
    </html>
    """

    return subject, body


# SMS Templates
def get_order_decided_sms(order_data: dict) -> str:
    verdict = "approved" if order_data['status'] == "APPROVED" else "rejected"
    return f"Order #{str(order_data['id'])[:8]} for {order_data['quantity']} x {order_data.get('product_name', 'product')} was {verdict}. - {APP_NAME}"


def get_order_shipped_sms(order_data: dict) -> str:
    logistics = order_data.get('logistics') or {}
    return f"Order #{str(order_data['id'])[:8]} shipped via {logistics.get('company', 'carrier')}, tracking {logistics.get('tracking_number', '-')}. - {APP_NAME}"


def get_password_reset_sms(reset_link: str) -> str:
    return f"Reset your password: {reset_link} - {APP_NAME}"
