"""Per-type notification copy and candidate channels."""

from __future__ import annotations

from dataclasses import dataclass

from app.notifications.models import CHANNELS, Channel, NotificationType


@dataclass(frozen=True)
class NotificationTemplate:
  """Copy for every channel of one notification type."""

  type: NotificationType
  channels: tuple[Channel, ...]
  subject: str
  email_body: str
  text_body: str
  sms: str
  whatsapp: str
  in_app_title: str
  in_app_message: str


_EMAIL_AND_IN_APP: tuple[Channel, ...] = ("email", "in_app")

TEMPLATES: dict[str, NotificationTemplate] = {
  "request_created": NotificationTemplate(
    type="request_created",
    channels=CHANNELS,
    subject="New Recommendation Letter Request",
    email_body=(
      "<p>Hello {{lecturer_name}},</p>"
      "<p>You have received a new recommendation letter request from {{student_name}} for {{purpose}}.</p>"
      "<p><strong>Deadline:</strong> {{deadline}}</p>"
      "<p><strong>Details:</strong> {{details}}</p>"
      "<p>Please log in to your dashboard to review and respond to this request.</p>"
    ),
    text_body="Hello {{lecturer_name}},\n\nYou have received a new recommendation letter request from {{student_name}} for {{purpose}}.\nDeadline: {{deadline}}\nDetails: {{details}}\n\nPlease log in to your dashboard to respond.",
    sms="New letter request from {{student_name}} for {{purpose}}. Deadline: {{deadline}}. Check your dashboard to respond.",
    whatsapp="Hello {{lecturer_name}}! You have a new recommendation letter request from {{student_name}} for {{purpose}}. Deadline: {{deadline}}. Please check your dashboard.",
    in_app_title="New Request Received",
    in_app_message="You have a new recommendation letter request from {{student_name}} for {{purpose}}",
  ),
  "request_accepted": NotificationTemplate(
    type="request_accepted",
    channels=CHANNELS,
    subject="Request Accepted - Recommendation Letter",
    email_body=(
      "<p>Hello {{student_name}},</p>"
      "<p>Great news! {{lecturer_name}} has accepted your recommendation letter request for {{purpose}}.</p>"
      "<p><strong>Deadline:</strong> {{deadline}}</p>"
      "<p>Your letter is now in progress. You'll receive another notification when it's completed.</p>"
    ),
    text_body="Hello {{student_name}},\n\n{{lecturer_name}} has accepted your recommendation letter request for {{purpose}}.\nDeadline: {{deadline}}",
    sms="Good news! {{lecturer_name}} accepted your letter request for {{purpose}}. Deadline: {{deadline}}.",
    whatsapp="Hello {{student_name}}! {{lecturer_name}} has accepted your recommendation letter request for {{purpose}}. Deadline: {{deadline}}.",
    in_app_title="Request Accepted",
    in_app_message="{{lecturer_name}} has accepted your recommendation letter request for {{purpose}}",
  ),
  "request_declined": NotificationTemplate(
    type="request_declined",
    channels=CHANNELS,
    subject="Request Declined - Recommendation Letter",
    email_body=(
      "<p>Hello {{student_name}},</p>"
      "<p>Unfortunately, {{lecturer_name}} has declined your recommendation letter request for {{purpose}}.</p>"
      "<p><strong>Reason:</strong> {{reason}}</p>"
      "<p>You can reassign this request to another lecturer from your dashboard.</p>"
    ),
    text_body="Hello {{student_name}},\n\n{{lecturer_name}} has declined your recommendation letter request for {{purpose}}.\nReason: {{reason}}\n\nYou can reassign this request from your dashboard.",
    sms="{{lecturer_name}} declined your letter request for {{purpose}}. Reason: {{reason}}. You can reassign from your dashboard.",
    whatsapp="Hello {{student_name}}, {{lecturer_name}} declined your letter request for {{purpose}}. Reason: {{reason}}. You can reassign from your dashboard.",
    in_app_title="Request Declined",
    in_app_message="{{lecturer_name}} has declined your recommendation letter request for {{purpose}}",
  ),
  "request_completed": NotificationTemplate(
    type="request_completed",
    channels=CHANNELS,
    subject="Letter Completed - Recommendation Letter",
    email_body=(
      "<p>Hello {{student_name}},</p>"
      "<p>{{lecturer_name}} has completed your recommendation letter for {{purpose}}.</p>"
      "<p>The letter has been submitted according to your specified delivery method.</p>"
    ),
    text_body="Hello {{student_name}},\n\n{{lecturer_name}} has completed your recommendation letter for {{purpose}}.",
    sms="Your letter for {{purpose}} is complete! {{lecturer_name}} has submitted it.",
    whatsapp="Great news {{student_name}}! Your recommendation letter for {{purpose}} is complete and has been submitted by {{lecturer_name}}.",
    in_app_title="Letter Completed",
    in_app_message="Your recommendation letter for {{purpose}} has been completed and submitted",
  ),
  "request_reassigned": NotificationTemplate(
    type="request_reassigned",
    channels=CHANNELS,
    subject="Request Reassigned - Recommendation Letter",
    email_body=(
      "<p>Hello {{lecturer_name}},</p>"
      "<p>You have been assigned a recommendation letter request from {{student_name}} for {{purpose}}.</p>"
      "<p>This request was previously assigned to another lecturer.</p>"
      "<p><strong>Deadline:</strong> {{deadline}}</p>"
    ),
    text_body="Hello {{lecturer_name}},\n\nYou have been assigned a recommendation letter request from {{student_name}} for {{purpose}}.\nDeadline: {{deadline}}",
    sms="Reassigned letter request from {{student_name}} for {{purpose}}. Deadline: {{deadline}}. Check your dashboard.",
    whatsapp="Hello {{lecturer_name}}! You have been assigned a letter request from {{student_name}} for {{purpose}}. Deadline: {{deadline}}.",
    in_app_title="Request Reassigned",
    in_app_message="You have been assigned a recommendation letter request from {{student_name}}",
  ),
  "request_cancelled": NotificationTemplate(
    type="request_cancelled",
    channels=CHANNELS,
    subject="Request Cancelled - Recommendation Letter",
    email_body=(
      "<p>Hello {{recipient_name}},</p>"
      "<p>The recommendation letter request from {{student_name}} for {{purpose}} has been cancelled.</p>"
      "<p><strong>Reason:</strong> {{reason}}</p>"
      "<p>No further action is required from you.</p>"
    ),
    text_body="Hello {{recipient_name}},\n\nThe recommendation letter request from {{student_name}} for {{purpose}} has been cancelled.\nReason: {{reason}}",
    sms="Letter request from {{student_name}} for {{purpose}} has been cancelled. Reason: {{reason}}.",
    whatsapp="Hello {{recipient_name}}, the letter request from {{student_name}} for {{purpose}} has been cancelled.",
    in_app_title="Request Cancelled",
    in_app_message="The recommendation letter request from {{student_name}} has been cancelled",
  ),
  "payment_received": NotificationTemplate(
    type="payment_received",
    channels=_EMAIL_AND_IN_APP,
    subject="Payment Received - Recommendation Letter",
    email_body=(
      "<p>Hello {{student_name}},</p>"
      "<p>We have received your payment of ${{amount}} for the recommendation letter request.</p>"
      "<p><strong>Request:</strong> {{purpose}}</p>"
      "<p><strong>Lecturer:</strong> {{lecturer_name}}</p>"
      "<p>Your request has been sent to the lecturer for review.</p>"
    ),
    text_body="Hello {{student_name}},\n\nWe have received your payment of ${{amount}} for {{purpose}}.\nLecturer: {{lecturer_name}}",
    sms="Payment of ${{amount}} received for your letter request. Request sent to {{lecturer_name}}.",
    whatsapp="Payment received! Your letter request for {{purpose}} has been sent to {{lecturer_name}}.",
    in_app_title="Payment Received",
    in_app_message="Payment of ${{amount}} received for your recommendation letter request",
  ),
  "payment_failed": NotificationTemplate(
    type="payment_failed",
    channels=CHANNELS,
    subject="Payment Failed - Recommendation Letter",
    email_body=(
      "<p>Hello {{student_name}},</p>"
      "<p>Unfortunately, your payment of ${{amount}} for the recommendation letter request has failed.</p>"
      "<p><strong>Reason:</strong> {{reason}}</p>"
      "<p>Please try again or contact support if the issue persists.</p>"
    ),
    text_body="Hello {{student_name}},\n\nYour payment of ${{amount}} has failed.\nReason: {{reason}}\n\nPlease try again or contact support.",
    sms="Payment failed for your letter request. Reason: {{reason}}. Please try again.",
    whatsapp="Hello {{student_name}}, your payment for the letter request failed. Please try again from your dashboard.",
    in_app_title="Payment Failed",
    in_app_message="Your payment for the recommendation letter request has failed",
  ),
  "payout_completed": NotificationTemplate(
    type="payout_completed",
    channels=_EMAIL_AND_IN_APP,
    subject="Payout Completed - Recommendation Letter",
    email_body=(
      "<p>Hello {{lecturer_name}},</p>"
      "<p>Your payout of ${{amount}} for the completed recommendation letter has been processed.</p>"
      "<p><strong>Student:</strong> {{student_name}}</p>"
      "<p><strong>Purpose:</strong> {{purpose}}</p>"
      "<p>The funds should appear in your account within 1-2 business days.</p>"
    ),
    text_body="Hello {{lecturer_name}},\n\nYour payout of ${{amount}} has been processed. Funds arrive within 1-2 business days.",
    sms="Payout of ${{amount}} processed for completed letter. Funds arriving in 1-2 business days.",
    whatsapp="Great news {{lecturer_name}}! Your payout of ${{amount}} has been processed and will arrive in 1-2 business days.",
    in_app_title="Payout Completed",
    in_app_message="Your payout of ${{amount}} has been processed successfully",
  ),
  "reminder_pending": NotificationTemplate(
    type="reminder_pending",
    channels=CHANNELS,
    subject="Reminder: Pending Recommendation Letter Request",
    email_body=(
      "<p>Hello {{lecturer_name}},</p>"
      "<p>This is a friendly reminder that you have a pending recommendation letter request from {{student_name}}.</p>"
      "<p><strong>Purpose:</strong> {{purpose}}</p>"
      "<p><strong>Deadline:</strong> {{deadline}}</p>"
      "<p><strong>Days Remaining:</strong> {{days_remaining}}</p>"
    ),
    text_body="Hello {{lecturer_name}},\n\nReminder: pending letter request from {{student_name}} for {{purpose}}.\nDeadline: {{deadline}} ({{days_remaining}} days remaining)",
    sms="Reminder: Pending letter request from {{student_name}} for {{purpose}}. Deadline: {{deadline}}. {{days_remaining}} days remaining.",
    whatsapp="Hello {{lecturer_name}}, reminder about the pending letter request from {{student_name}} for {{purpose}}. Deadline: {{deadline}}.",
    in_app_title="Pending Request Reminder",
    in_app_message="Reminder: You have a pending request from {{student_name}} with deadline {{deadline}}",
  ),
  "reminder_student_pending": NotificationTemplate(
    type="reminder_student_pending",
    channels=_EMAIL_AND_IN_APP,
    subject="Your Request Is Still Pending",
    email_body=(
      "<p>Hello {{student_name}},</p>"
      "<p>Your recommendation letter request for {{purpose}} has been pending for a week.</p>"
      "<p>We have sent a reminder to your selected lecturers.</p>"
    ),
    text_body="Hello {{student_name}},\n\nYour request for {{purpose}} has been pending for a week. We have sent a reminder to your selected lecturers.",
    sms="Your letter request for {{purpose}} is still pending. We have reminded your lecturers.",
    whatsapp="Hello {{student_name}}, your letter request for {{purpose}} is still pending. We have reminded your lecturers.",
    in_app_title="Request Pending Response",
    in_app_message="Your request for {{purpose}} has been pending for one week. We've sent a reminder to your selected lecturers.",
  ),
  "reminder_student_deadline": NotificationTemplate(
    type="reminder_student_deadline",
    channels=_EMAIL_AND_IN_APP,
    subject="Deadline Approaching",
    email_body=(
      "<p>Hello {{student_name}},</p>"
      "<p>The deadline for your recommendation letter for {{purpose}} is on {{deadline}}.</p>"
      "<p><strong>Days Remaining:</strong> {{days_remaining}}</p>"
    ),
    text_body="Hello {{student_name}},\n\nThe deadline for your recommendation letter for {{purpose}} is on {{deadline}} ({{days_remaining}} days remaining).",
    sms="The deadline for your letter for {{purpose}} is {{deadline}}. {{days_remaining}} days remaining.",
    whatsapp="Hello {{student_name}}, the deadline for your letter for {{purpose}} is {{deadline}}.",
    in_app_title="Deadline Approaching",
    in_app_message="The deadline for your recommendation letter for {{purpose}} is in {{days_remaining}} days ({{deadline}})",
  ),
  "complaint_filed": NotificationTemplate(
    type="complaint_filed",
    channels=_EMAIL_AND_IN_APP,
    subject="New Complaint Filed",
    email_body=(
      "<p>Hello Admin,</p>"
      "<p>A new complaint has been filed by {{student_name}}.</p>"
      "<p><strong>Type:</strong> {{complaint_type}}</p>"
      "<p><strong>Subject:</strong> {{subject}}</p>"
      "<p><strong>Priority:</strong> {{priority}}</p>"
      "<p>Please review and assign the complaint in the admin dashboard.</p>"
    ),
    text_body="A new {{priority}} priority complaint was filed by {{student_name}}.\nType: {{complaint_type}}\nSubject: {{subject}}",
    sms="New complaint filed by {{student_name}}. Type: {{complaint_type}}. Priority: {{priority}}.",
    whatsapp="New complaint filed by {{student_name}}. Please check the admin dashboard.",
    in_app_title="New Complaint Filed",
    in_app_message="A new {{priority}} priority complaint has been filed by {{student_name}}",
  ),
  "admin_alert": NotificationTemplate(
    type="admin_alert",
    channels=("in_app",),
    subject="System Alert - GetReference",
    email_body="<p><strong>Alert Type:</strong> {{alert_type}}</p><p><strong>Message:</strong> {{message}}</p><p><strong>Time:</strong> {{timestamp}}</p>",
    text_body="System alert {{alert_type}} at {{timestamp}}: {{message}}",
    sms="System Alert: {{alert_type}} - {{message}}",
    whatsapp="System Alert: {{alert_type}} - {{message}}. Please check the admin dashboard.",
    in_app_title="System Alert",
    in_app_message="{{alert_type}}: {{message}}",
  ),
}


def get_template(notification_type: str) -> NotificationTemplate:
  """Resolve the template for a notification type."""
  template = TEMPLATES.get(notification_type)
  if template is None:
    raise ValueError(f"Unknown notification type: {notification_type}")
  return template
