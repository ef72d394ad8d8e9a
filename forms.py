from flask_wtf import FlaskForm
from wtforms import (
    BooleanField,
    DecimalField,
    Field,
    FloatField,
    IntegerField,
    PasswordField,
    SelectField,
    StringField,
    TextAreaField,
)
from wtforms.validators import (
    DataRequired,
    InputRequired,
    Length,
    NumberRange,
    Optional,
)
from wtforms.widgets import TextInput

from models.checklist import ChecklistStatus
from models.project import ProjectStatus
from models.task import STATUS_LABELS, TaskStatus
from models.vendor import VENDOR_ROLE_LABELS, VendorRole
from utils.date_kst import isoformat_utc, parse_date_input, to_db

TASK_STATUS_CHOICES = [(status.value, STATUS_LABELS[status.value]) for status in TaskStatus]
PROJECT_STATUS_CHOICES = [(status.value, status.value) for status in ProjectStatus]
CHECKLIST_STATUS_CHOICES = [(status.value, status.value) for status in ChecklistStatus]
VENDOR_ROLE_CHOICES = [(role.value, VENDOR_ROLE_LABELS[role.value]) for role in VendorRole]


class KstDateTimeField(Field):
    """Accepts ``YYYY-MM-DD`` (KST midnight) or ISO-8601; stores naive UTC."""

    widget = TextInput()

    def _value(self):
        if self.raw_data:
            return " ".join(self.raw_data)
        return isoformat_utc(self.data) or ""

    def process_formdata(self, valuelist):
        if not valuelist or not valuelist[0]:
            self.data = None
            return
        try:
            self.data = to_db(parse_date_input(valuelist[0], self.name))
        except ValueError as exc:
            self.data = None
            raise ValueError(str(exc)) from exc


class TaskForm(FlaskForm):
    title = StringField("Title", [DataRequired(), Length(max=255)])
    description = TextAreaField("Description", [Optional()])
    due_date = KstDateTimeField("Due Date", [Optional()])
    assignee_id = IntegerField("Assignee", [Optional()])
    is_mandatory = BooleanField("Mandatory")
    waiting_for = StringField("Waiting For", [Optional(), Length(max=255)])
    notification_enabled = BooleanField("Notifications")
    reminder_interval_min = IntegerField(
        "Reminder Interval (minutes)",
        [Optional(), NumberRange(min=1, message="Reminder interval must be at least one minute.")],
    )


class TaskCreateForm(TaskForm):
    project_stage_id = IntegerField("Stage", [InputRequired(message="A stage is required.")])
    is_active = BooleanField("Active", default=True)


class TaskUpdateForm(TaskForm):
    title = StringField("Title", [Optional(), Length(max=255)])


class TaskStatusForm(FlaskForm):
    status = SelectField(
        "Status",
        choices=TASK_STATUS_CHOICES,
        validators=[DataRequired(message="A status is required.")],
    )
    memo = TextAreaField("Memo", [Optional()])
    waiting_for = StringField("Waiting For", [Optional(), Length(max=255)])
    due_date = KstDateTimeField("Due Date", [Optional()])


class ActiveToggleForm(FlaskForm):
    is_active = BooleanField("Active", [InputRequired(message="is_active is required.")])


class StageDatesForm(FlaskForm):
    start_date = KstDateTimeField("Start Date", [Optional()])
    received_date = KstDateTimeField("Received Date", [Optional()])
    completed_date = KstDateTimeField("Completed Date", [Optional()])


class ProjectForm(FlaskForm):
    name = StringField("Name", [DataRequired(), Length(max=200)])
    address = StringField("Address", [Optional(), Length(max=255)])
    capacity_kw = FloatField("Capacity (kW)", [Optional(), NumberRange(min=0)])
    status = SelectField(
        "Status",
        choices=PROJECT_STATUS_CHOICES,
        validators=[Optional()],
    )
    target_date = KstDateTimeField("Target Date", [Optional()])
    permit_number = StringField("Permit Number", [Optional(), Length(max=120)])
    external_id = StringField("External ID", [Optional(), Length(max=120)])
    site_password = PasswordField("Site Password", [Optional(), Length(max=255)])


class ProjectUpdateForm(ProjectForm):
    name = StringField("Name", [Optional(), Length(max=200)])


class ChecklistItemForm(FlaskForm):
    title = StringField("Title", [DataRequired(), Length(max=255)])
    status = SelectField(
        "Status",
        choices=CHECKLIST_STATUS_CHOICES,
        validators=[Optional()],
    )
    memo = TextAreaField("Memo", [Optional()])
    order = IntegerField("Order", [Optional(), NumberRange(min=0)])
    issued_at = KstDateTimeField("Issued At", [Optional()])
    expires_at = KstDateTimeField("Expires At", [Optional()])


class ChecklistItemUpdateForm(ChecklistItemForm):
    title = StringField("Title", [Optional(), Length(max=255)])


class RegisterTokenForm(FlaskForm):
    token = StringField("FCM Token", [DataRequired(message="token is required.")])


class TelegramTestForm(FlaskForm):
    text = TextAreaField("Text", [Optional(), Length(max=4096)])


class ChecklistTemplateForm(FlaskForm):
    name = StringField("Name", [DataRequired(), Length(max=200)])
    description = TextAreaField("Description", [Optional()])


class ChecklistTemplateUpdateForm(ChecklistTemplateForm):
    name = StringField("Name", [Optional(), Length(max=200)])


class ChecklistTemplateItemForm(FlaskForm):
    title = StringField("Title", [DataRequired(), Length(max=255)])
    order = IntegerField("Order", [Optional(), NumberRange(min=0)])
    has_expiry = BooleanField("Has Expiry")


class ChecklistTemplateItemUpdateForm(ChecklistTemplateItemForm):
    title = StringField("Title", [Optional(), Length(max=255)])


class StageTemplateForm(FlaskForm):
    name = StringField("Name", [DataRequired(), Length(max=120)])
    description = TextAreaField("Description", [Optional()])
    is_default_active = BooleanField("Active by Default", default=True)


class StageTemplateStructureForm(StageTemplateForm):
    name = StringField("Name", [Optional(), Length(max=120)])
    order = IntegerField("Order", [Optional(), NumberRange(min=1)])


class TaskTemplateForm(FlaskForm):
    id = IntegerField("Task Template", [Optional()])
    title = StringField("Title", [DataRequired(), Length(max=255)])
    description = TextAreaField("Description", [Optional()])
    order = IntegerField("Order", [Optional(), NumberRange(min=0)])
    is_mandatory = BooleanField("Mandatory")
    is_default_active = BooleanField("Active by Default", default=True)
    default_due_days = IntegerField("Default Due Days", [Optional()])


class VendorForm(FlaskForm):
    name = StringField("Name", [DataRequired(), Length(max=200)])
    contact = StringField("Contact", [Optional(), Length(max=120)])
    biz_no = StringField("Business Registration No.", [Optional(), Length(max=40)])
    bank_account = StringField("Bank Account", [Optional(), Length(max=120)])
    address = StringField("Address", [Optional(), Length(max=255)])
    memo = TextAreaField("Memo", [Optional()])


class VendorUpdateForm(VendorForm):
    name = StringField("Name", [Optional(), Length(max=200)])


class ProjectVendorForm(FlaskForm):
    role = SelectField(
        "Role",
        choices=VENDOR_ROLE_CHOICES,
        validators=[DataRequired(message="A vendor role is required.")],
    )
    vendor_id = IntegerField("Vendor", [InputRequired(message="A vendor is required.")])
    contact_name = StringField("Contact Name", [Optional(), Length(max=80)])
    contact_phone = StringField("Contact Phone", [Optional(), Length(max=40)])
    memo = TextAreaField("Memo", [Optional()])


class BudgetCategoryForm(FlaskForm):
    name = StringField("Name", [DataRequired(), Length(max=120)])
    vendor_role = SelectField(
        "Vendor Role",
        choices=[("", "")] + VENDOR_ROLE_CHOICES,
        validators=[Optional()],
    )
    is_default = BooleanField("Default Category")
    order = IntegerField("Order", [Optional(), NumberRange(min=1)])


class BudgetCategoryUpdateForm(BudgetCategoryForm):
    name = StringField("Name", [Optional(), Length(max=120)])


class BudgetAmountsForm(FlaskForm):
    contract_amount = DecimalField("Contract Amount", [Optional(), NumberRange(min=0)])
    planned_amount = DecimalField("Planned Amount", [Optional(), NumberRange(min=0)])
    actual_amount = DecimalField("Actual Amount", [Optional(), NumberRange(min=0)])
    vendor_override_id = IntegerField("Vendor Override", [Optional()])


class BudgetItemForm(BudgetAmountsForm):
    category_id = IntegerField("Category", [InputRequired(message="A category is required.")])
