import uuid

from django.contrib.auth import get_user_model
from django.db import models
from django.utils import timezone

from .matching import RuleOrder
from .tax_ids import format_tax_id, only_digits

User = get_user_model()

RECEIPT_NUMBER_WIDTH = 6


def format_receipt_identifier(number: int, year: int) -> str:
    return f"{number:0{RECEIPT_NUMBER_WIDTH}d}/{year:04d}"


class CategoryKind(models.TextChoices):
    DESPESA = "DESPESA", "Despesa"
    RECEITA = "RECEITA", "Receita"
    TRANSFERENCIA = "TRANSFERENCIA", "Transferência"


class EntryKind(models.TextChoices):
    DESPESA = "DESPESA", "Despesa"
    RECEITA = "RECEITA", "Receita"


class EntryStatus(models.TextChoices):
    EM_ABERTO = "EM_ABERTO", "Em aberto"
    PAGO = "PAGO", "Pago"
    CANCELADO = "CANCELADO", "Cancelado"


class Category(models.Model):
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name="categories")
    name = models.CharField(max_length=120)
    kind = models.CharField(max_length=16, choices=CategoryKind.choices, default=CategoryKind.DESPESA)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["kind", "name"]

    def __str__(self):
        return f"Category({self.owner_id}, {self.name})"


class Beneficiary(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name="beneficiaries")
    name = models.CharField(max_length=200)
    document = models.CharField(max_length=32, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    notes = models.TextField(blank=True, default="")
    signature_path = models.CharField(max_length=500, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def save(self, *args, **kwargs):
        self.name = (self.name or "").strip()
        self.document = only_digits(self.document)
        super().save(*args, **kwargs)

    @property
    def document_display(self) -> str:
        return format_tax_id(self.document)

    def __str__(self):
        return f"{self.name} ({self.id})"


class ClassificationRuleQuerySet(models.QuerySet):
    def for_owner(self, owner_id):
        return self.filter(owner_id=owner_id)

    def for_matching(self, owner_id, order: RuleOrder = RuleOrder.NEWEST_FIRST):
        return self.for_owner(owner_id).order_by(*order.ordering)


class ClassificationRule(models.Model):
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name="classification_rules")
    term = models.CharField(max_length=200)
    category = models.ForeignKey(
        Category, null=True, blank=True, on_delete=models.SET_NULL, related_name="rules"
    )
    beneficiary = models.ForeignKey(
        Beneficiary, null=True, blank=True, on_delete=models.SET_NULL, related_name="rules"
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    objects = ClassificationRuleQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]

    def save(self, *args, **kwargs):
        self.term = (self.term or "").strip()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"ClassificationRule({self.owner_id}, {self.term})"


class ChurchSettings(models.Model):
    owner = models.OneToOneField(User, on_delete=models.CASCADE, related_name="church_settings")
    church_name = models.CharField(max_length=200)
    church_tax_id = models.CharField(max_length=14)
    responsible_name = models.CharField(max_length=200)
    responsible_tax_id = models.CharField(max_length=11)
    signature_path = models.CharField(max_length=500, blank=True, default="")
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        self.church_tax_id = only_digits(self.church_tax_id)
        self.responsible_tax_id = only_digits(self.responsible_tax_id)
        super().save(*args, **kwargs)

    def is_complete(self) -> bool:
        return all(
            (value or "").strip()
            for value in (
                self.church_name,
                self.church_tax_id,
                self.responsible_name,
                self.responsible_tax_id,
            )
        )

    def __str__(self):
        return f"ChurchSettings({self.owner_id}, {self.church_name})"


class LedgerEntry(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name="ledger_entries")
    description = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    due_date = models.DateField()
    kind = models.CharField(max_length=8, choices=EntryKind.choices, default=EntryKind.DESPESA)
    status = models.CharField(max_length=16, choices=EntryStatus.choices, default=EntryStatus.EM_ABERTO)
    category = models.ForeignKey(
        Category, null=True, blank=True, on_delete=models.SET_NULL, related_name="entries"
    )
    beneficiary = models.ForeignKey(
        Beneficiary, null=True, blank=True, on_delete=models.SET_NULL, related_name="entries"
    )
    notes = models.TextField(blank=True, default="")

    payment_date = models.DateField(null=True, blank=True)
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    receipt_doc_number = models.PositiveIntegerField(null=True, blank=True)
    receipt_year = models.PositiveSmallIntegerField(null=True, blank=True)
    receipt_pdf_path = models.CharField(max_length=500, blank=True, default="")
    receipt_generated_at = models.DateTimeField(null=True, blank=True)

    boleto_url = models.CharField(max_length=500, blank=True, default="")
    proof_url = models.CharField(max_length=500, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["due_date", "created_at"]

    @property
    def is_paid(self) -> bool:
        return self.status == EntryStatus.PAGO

    @property
    def document_amount(self):
        if self.is_paid and self.paid_amount is not None:
            return self.paid_amount
        return self.amount

    @property
    def document_date(self):
        if self.is_paid and self.payment_date is not None:
            return self.payment_date
        return self.due_date

    @property
    def receipt_locked(self) -> bool:
        return bool(self.receipt_pdf_path)

    @property
    def receipt_identifier(self) -> str:
        if self.receipt_doc_number is None or self.receipt_year is None:
            return ""
        return format_receipt_identifier(self.receipt_doc_number, self.receipt_year)

    def mark_receipt_generated(self, path: str):
        self.receipt_pdf_path = path
        self.receipt_generated_at = timezone.now()

    def __str__(self):
        return f"{self.description} ({self.id})"


class ReceiptSequence(models.Model):
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name="receipt_sequences")
    year = models.PositiveSmallIntegerField()
    last_number = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("owner", "year")

    def __str__(self):
        return f"ReceiptSequence({self.owner_id}, {self.year}, {self.last_number})"
