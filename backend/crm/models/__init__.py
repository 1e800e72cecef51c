from crm.models.user import User, Session
from crm.models.campaign import Campaign
from crm.models.lead import Lead
from crm.models.interaction import Interaction

__all__ = ["User", "Session", "Campaign", "Lead", "Interaction"]
