"""
数据模型
"""
from advantix.models.user import User, UserRole
from advantix.models.permission import Page, RolePermission, UserMenuPermission
from advantix.models.client import Client, AdAccount
from advantix.models.campaign import Campaign, CampaignDailySpend, AdCopySet
from advantix.models.work_report import WorkReport
from advantix.models.finance import (
    FinanceProject,
    FinancePayment,
    FinanceExpense,
    FinanceSetting,
    Employee,
    Salary,
)
from advantix.models.farming_account import FarmingAccount
from advantix.models.gher import (
    GherPartner,
    GherTag,
    GherEntry,
    GherCapitalTransaction,
    GherInvoice,
    GherInvoiceCounter,
    GherAuditLog,
)

__all__ = [
    "User",
    "UserRole",
    "Page",
    "RolePermission",
    "UserMenuPermission",
    "Client",
    "AdAccount",
    "Campaign",
    "CampaignDailySpend",
    "AdCopySet",
    "WorkReport",
    "FinanceProject",
    "FinancePayment",
    "FinanceExpense",
    "FinanceSetting",
    "Employee",
    "Salary",
    "FarmingAccount",
    "GherPartner",
    "GherTag",
    "GherEntry",
    "GherCapitalTransaction",
    "GherInvoice",
    "GherInvoiceCounter",
    "GherAuditLog",
]
