from forge_crm.models.user import User
from forge_crm.models.deal import Deal, Lead
from forge_crm.models.activity import Activity, Task
from forge_crm.models.marketing_task import MarketingTask
from forge_crm.models.alert import AlertRecord, AlertExclusion, EmailLog

__all__ = [
    "User",
    "Deal", "Lead",
    "Activity", "Task",
    "MarketingTask",
    "AlertRecord", "AlertExclusion", "EmailLog",
]
