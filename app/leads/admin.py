"""
Django admin configuration for lead models.
"""

from django.contrib import admin

from leads.models import ContractorLeadStatus, HESRequest, SystemLead


@admin.register(SystemLead)
class SystemLeadAdmin(admin.ModelAdmin):
    list_display = ("id", "system_type", "city", "state", "status", "price", "purchased_date")
    list_filter = ("status", "system_type")
    search_fields = ("id", "city", "zip_code", "purchased_by_contractor__email")
    raw_id_fields = ("purchased_by_contractor",)
    readonly_fields = ("created_at", "updated_at")


@admin.register(HESRequest)
class HESRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "property_address", "city", "status", "price", "purchased_date")
    list_filter = ("status",)
    search_fields = ("id", "property_address", "city", "purchased_by_affiliate__email")
    raw_id_fields = ("purchased_by_affiliate", "assigned_to_affiliate")
    readonly_fields = ("created_at", "updated_at")


@admin.register(ContractorLeadStatus)
class ContractorLeadStatusAdmin(admin.ModelAdmin):
    list_display = ("contractor", "system_lead", "hes_request", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("contractor__email",)
    raw_id_fields = ("contractor", "system_lead", "hes_request")
