import logging

from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ParseError, ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import whatsapp
from .classifier import classify_comprovante
from .exceptions import AlreadyGenerated, ConfigurationError, FinanceiroError, TransportError
from .exceptions import ValidationError as FinanceiroValidationError
from .matching import AllUsersScope, parse_rule_scope, require_single_owner
from .models import (
    Beneficiary,
    Category,
    ChurchSettings,
    ClassificationRule,
    EntryStatus,
    LedgerEntry,
)
from .receipts import attach_as_proof, build_reimbursement, generate_receipt, receipt_url
from .storage import get_object_storage
from .tax_ids import is_valid_cnpj, is_valid_cpf, only_digits

logger = logging.getLogger(__name__)

LOCKED_ENTRY_FIELDS = (
    "description",
    "amount",
    "due_date",
    "kind",
    "status",
    "payment_date",
    "paid_amount",
)
TRUE_VALUES = {"1", "true", "yes", "on"}


class IsAuthenticatedOrOptions(IsAuthenticated):
    def has_permission(self, request, view):
        if request.method == "OPTIONS":
            return True
        return super().has_permission(request, view)


def _domain_error_response(exc: FinanceiroError) -> Response:
    if isinstance(exc, FinanceiroValidationError) and exc.field:
        return Response({exc.field: exc.message}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, ConfigurationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, AlreadyGenerated):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, TransportError):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_400_BAD_REQUEST
    return Response({"detail": exc.message}, status=code)


def _first_string(*values) -> str:
    for value in values:
        if isinstance(value, str) and value:
            return value
    return ""


def _parse_bool(value) -> bool:
    return str(value or "").strip().lower() in TRUE_VALUES


class HealthView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({"ok": True})


class CorsAllowAllMixin:
    """Public function endpoints answer any origin, preflight included."""

    cors_headers = {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
    }

    def options(self, request, *args, **kwargs):
        return HttpResponse("ok", content_type="text/plain")

    def read_json(self, request) -> dict:
        """Parsed body as a dict; malformed JSON raises ParseError."""
        data = request.data
        return data if isinstance(data, dict) else {}

    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        for header, value in self.cors_headers.items():
            response[header] = value
        return response


class ClassifyComprovanteView(CorsAllowAllMixin, APIView):
    authentication_classes = []
    permission_classes = [AllowAny]
    parser_classes = [JSONParser]

    def post(self, request):
        try:
            data = self.read_json(request)
        except ParseError as exc:
            logger.warning("comprovante_classify_bad_body error=%s", exc.detail)
            return Response(
                {"success": False, "error": str(exc.detail)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        url = _first_string(data.get("file_url"), data.get("url")).strip()
        user_id = data.get("user_id")
        if not url or not user_id:
            return Response(
                {"success": False, "error": "missing url/file_url or user_id"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        descricao = _first_string(data.get("descricao"))
        try:
            result = classify_comprovante(user_id, url, descricao)
        except Exception as exc:
            logger.exception("comprovante_classify_failed user=%s url=%s", user_id, url)
            return Response(
                {"success": False, "error": str(exc)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return Response(result.to_payload())


class WhatsAppSendView(CorsAllowAllMixin, APIView):
    authentication_classes = []
    permission_classes = [AllowAny]
    parser_classes = [JSONParser]

    def post(self, request):
        try:
            whatsapp.ensure_configured()
        except ConfigurationError as exc:
            logger.error("whatsapp_not_configured")
            return Response({"error": exc.message}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        try:
            data = self.read_json(request)
        except ParseError as exc:
            logger.warning("whatsapp_bad_body error=%s", exc.detail)
            return Response({"error": str(exc.detail)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        numero = data.get("numero")
        mensagem = data.get("mensagem")
        if not numero or not mensagem:
            return Response(
                {"error": "Número e mensagem são obrigatórios"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            upstream = whatsapp.send_text_message(str(numero), str(mensagem))
        except Exception as exc:
            logger.exception("whatsapp_send_error")
            return Response({"error": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        if not upstream.ok:
            return Response(
                {"error": "Falha ao enviar mensagem", "details": upstream.payload},
                status=upstream.status_code,
            )
        return Response({"success": True, "result": upstream.payload})


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ["id", "name", "kind", "created_at"]
        read_only_fields = ["id", "created_at"]

    def validate_name(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Informe o nome da categoria.")
        return value


class BeneficiarySerializer(serializers.ModelSerializer):
    document_display = serializers.CharField(read_only=True)

    class Meta:
        model = Beneficiary
        fields = [
            "id",
            "name",
            "document",
            "document_display",
            "phone",
            "email",
            "notes",
            "signature_path",
            "created_at",
        ]
        read_only_fields = ["id", "created_at"]

    def validate_name(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Informe o nome do beneficiário.")
        return value

    def validate_document(self, value):
        return only_digits(value)


def _owned_or_error(instance, owner_id, field: str):
    if instance is not None and instance.owner_id != owner_id:
        raise serializers.ValidationError({field: "Registro não pertence ao usuário."})


class ClassificationRuleSerializer(serializers.ModelSerializer):
    owner = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = ClassificationRule
        fields = ["id", "owner", "term", "category", "beneficiary", "created_at"]
        read_only_fields = ["id", "owner", "created_at"]

    def validate_term(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Informe o termo da regra.")
        return value

    def validate(self, attrs):
        owner_id = self.context.get("owner_id")
        _owned_or_error(attrs.get("category"), owner_id, "category")
        _owned_or_error(attrs.get("beneficiary"), owner_id, "beneficiary")
        return attrs


class ChurchSettingsSerializer(serializers.ModelSerializer):
    church_tax_id = serializers.CharField(max_length=32)
    responsible_tax_id = serializers.CharField(max_length=32)

    class Meta:
        model = ChurchSettings
        fields = [
            "church_name",
            "church_tax_id",
            "responsible_name",
            "responsible_tax_id",
            "signature_path",
            "updated_at",
        ]
        read_only_fields = ["updated_at"]

    def validate_church_tax_id(self, value):
        if not is_valid_cnpj(value):
            raise serializers.ValidationError("CNPJ inválido.")
        return only_digits(value)

    def validate_responsible_tax_id(self, value):
        if not is_valid_cpf(value):
            raise serializers.ValidationError("CPF inválido.")
        return only_digits(value)


class LedgerEntrySerializer(serializers.ModelSerializer):
    receipt_identifier = serializers.CharField(read_only=True)

    class Meta:
        model = LedgerEntry
        fields = [
            "id",
            "description",
            "amount",
            "due_date",
            "kind",
            "status",
            "category",
            "beneficiary",
            "notes",
            "payment_date",
            "paid_amount",
            "receipt_doc_number",
            "receipt_year",
            "receipt_identifier",
            "receipt_pdf_path",
            "receipt_generated_at",
            "boleto_url",
            "proof_url",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "receipt_doc_number",
            "receipt_year",
            "receipt_pdf_path",
            "receipt_generated_at",
            "proof_url",
            "created_at",
            "updated_at",
        ]

    def validate(self, attrs):
        instance = self.instance
        if instance is not None and instance.receipt_locked:
            changed = [
                field
                for field in LOCKED_ENTRY_FIELDS
                if field in attrs and attrs[field] != getattr(instance, field)
            ]
            if changed:
                raise serializers.ValidationError(
                    {field: "Lançamento com recibo gerado não pode ser alterado." for field in changed}
                )

        def current(field):
            if field in attrs:
                return attrs[field]
            return getattr(instance, field, None) if instance is not None else None

        if current("status") == EntryStatus.PAGO:
            errors = {}
            if current("payment_date") is None:
                errors["payment_date"] = "Informe a data de pagamento."
            if current("paid_amount") is None:
                errors["paid_amount"] = "Informe o valor pago."
            if errors:
                raise serializers.ValidationError(errors)

        owner_id = self.context["request"].user.id
        _owned_or_error(attrs.get("category"), owner_id, "category")
        _owned_or_error(attrs.get("beneficiary"), owner_id, "beneficiary")
        return attrs


class CategoryViewSet(viewsets.ModelViewSet):
    serializer_class = CategorySerializer
    permission_classes = [IsAuthenticatedOrOptions]

    def get_queryset(self):
        return Category.objects.filter(owner=self.request.user)

    def perform_create(self, serializer):
        serializer.save(owner=self.request.user)


class BeneficiaryViewSet(viewsets.ModelViewSet):
    serializer_class = BeneficiarySerializer
    permission_classes = [IsAuthenticatedOrOptions]

    def get_queryset(self):
        queryset = Beneficiary.objects.filter(owner=self.request.user)
        search = (self.request.query_params.get("q") or "").strip()
        if search:
            queryset = queryset.filter(name__icontains=search)
        return queryset

    def perform_create(self, serializer):
        serializer.save(owner=self.request.user)


class ClassificationRuleViewSet(viewsets.ModelViewSet):
    serializer_class = ClassificationRuleSerializer
    permission_classes = [IsAuthenticatedOrOptions]
    http_method_names = ["get", "post", "delete", "head", "options"]

    def _scope(self, raw):
        user = self.request.user
        return parse_rule_scope(raw, default_user_id=user.id, allow_all=user.is_staff)

    def handle_exception(self, exc):
        if isinstance(exc, FinanceiroError):
            return _domain_error_response(exc)
        return super().handle_exception(exc)

    def get_queryset(self):
        queryset = ClassificationRule.objects.select_related("category", "beneficiary")
        if self.action == "destroy" and self.request.user.is_staff:
            return queryset
        scope = self._scope(self.request.query_params.get("user"))
        if isinstance(scope, AllUsersScope):
            return queryset.order_by("-created_at", "-id")
        return queryset.for_owner(scope.user_id).order_by("-created_at", "-id")

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if self.action == "create":
            raw = self.request.data.get("user") or self.request.query_params.get("user")
            context["owner_id"] = require_single_owner(self._scope(raw))
        return context

    def perform_create(self, serializer):
        rule = serializer.save(owner_id=serializer.context["owner_id"])
        logger.info("classification_rule_created owner=%s rule=%s", rule.owner_id, rule.id)


class ChurchSettingsView(APIView):
    permission_classes = [IsAuthenticatedOrOptions]

    def get(self, request):
        church = get_object_or_404(ChurchSettings, owner=request.user)
        return Response(ChurchSettingsSerializer(church).data)

    def put(self, request):
        church = ChurchSettings.objects.filter(owner=request.user).first()
        serializer = ChurchSettingsSerializer(church, data=request.data)
        serializer.is_valid(raise_exception=True)
        church = serializer.save(owner=request.user)
        return Response(ChurchSettingsSerializer(church).data)


class LedgerEntryViewSet(viewsets.ModelViewSet):
    serializer_class = LedgerEntrySerializer
    permission_classes = [IsAuthenticatedOrOptions]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get_queryset(self):
        queryset = LedgerEntry.objects.filter(owner=self.request.user).select_related("category", "beneficiary")
        status_param = (self.request.query_params.get("status") or "").strip()
        if status_param:
            statuses = [value.strip().upper() for value in status_param.split(",") if value.strip()]
            queryset = queryset.filter(status__in=statuses)
        kind = (self.request.query_params.get("kind") or "").strip().upper()
        if kind:
            queryset = queryset.filter(kind=kind)
        return queryset

    def perform_create(self, serializer):
        serializer.save(owner=self.request.user)

    def perform_destroy(self, instance):
        if instance.receipt_locked:
            raise ValidationError({"detail": "Lançamento com recibo gerado não pode ser excluído."})
        instance.delete()

    @action(detail=True, methods=["post"], url_path="generate-receipt")
    def create_receipt(self, request, pk=None):
        entry = self.get_object()
        storage = get_object_storage()
        try:
            document = generate_receipt(
                entry,
                drawn_signature=request.data.get("signature") or None,
                uploaded_signature=request.FILES.get("signature_file"),
                storage=storage,
            )
            url = receipt_url(entry, storage=storage)
        except FinanceiroError as exc:
            logger.info("receipt_generate_refused entry=%s reason=%s", entry.id, type(exc).__name__)
            return _domain_error_response(exc)
        return Response(
            {
                "path": document.path,
                "document_number": document.number,
                "year": document.year,
                "identifier": document.identifier,
                "url": url,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["get"], url_path="receipt")
    def receipt(self, request, pk=None):
        entry = self.get_object()
        try:
            url = receipt_url(entry, storage=get_object_storage())
        except TransportError as exc:
            return _domain_error_response(exc)
        if not url:
            return Response({"detail": "Recibo não gerado."}, status=status.HTTP_404_NOT_FOUND)
        return Response({"url": url})

    @action(detail=True, methods=["post"], url_path="reimbursement")
    def reimbursement(self, request, pk=None):
        entry = self.get_object()
        beneficiary_id = request.data.get("beneficiary") or request.data.get("beneficiario_id")
        if beneficiary_id:
            beneficiary = get_object_or_404(Beneficiary, pk=beneficiary_id, owner=request.user)
        else:
            beneficiary = entry.beneficiary

        storage = get_object_storage()
        try:
            document = build_reimbursement(
                entry,
                beneficiary=beneficiary,
                drawn_signature=request.data.get("signature") or None,
                uploaded_signature=request.FILES.get("signature_file"),
                storage=storage,
            )
            if _parse_bool(request.data.get("attach") or request.query_params.get("attach")):
                proof_url = attach_as_proof(entry, document, storage=storage)
                return Response(
                    {"proof_url": proof_url, "document_number": document.number, "year": document.year}
                )
        except FinanceiroError as exc:
            return _domain_error_response(exc)

        response = HttpResponse(document.pdf, content_type="application/pdf")
        response["Content-Disposition"] = (
            f'attachment; filename="reembolso-{document.year}-{document.number:06d}.pdf"'
        )
        response["X-Document-Number"] = document.identifier
        return response
