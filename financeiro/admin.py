from django.contrib import admin

from .models import Beneficiary, Category, ChurchSettings, ClassificationRule, LedgerEntry, ReceiptSequence


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "kind", "owner", "created_at")
    list_filter = ("kind",)
    search_fields = ("name", "owner__username")


@admin.register(Beneficiary)
class BeneficiaryAdmin(admin.ModelAdmin):
    list_display = ("name", "document", "owner", "created_at")
    search_fields = ("name", "document", "owner__username")


@admin.register(ClassificationRule)
class ClassificationRuleAdmin(admin.ModelAdmin):
    list_display = ("term", "category", "beneficiary", "owner", "created_at")
    search_fields = ("term", "owner__username")
    list_select_related = ("category", "beneficiary", "owner")


@admin.register(ChurchSettings)
class ChurchSettingsAdmin(admin.ModelAdmin):
    list_display = ("church_name", "church_tax_id", "responsible_name", "owner", "updated_at")
    search_fields = ("church_name", "owner__username")


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    list_display = ("description", "amount", "due_date", "kind", "status", "receipt_identifier", "owner")
    list_filter = ("status", "kind", "due_date")
    search_fields = ("description", "id", "owner__username")
    readonly_fields = ("receipt_doc_number", "receipt_year", "receipt_pdf_path", "receipt_generated_at")


@admin.register(ReceiptSequence)
class ReceiptSequenceAdmin(admin.ModelAdmin):
    list_display = ("owner", "year", "last_number", "updated_at")
    list_filter = ("year",)
    readonly_fields = ("last_number",)
