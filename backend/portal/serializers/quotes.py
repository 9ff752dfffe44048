from __future__ import annotations

from rest_framework import serializers

from ..models import Quote, ServiceType


class QuoteRequestSerializer(serializers.Serializer):
    contact_name = serializers.CharField(max_length=160)
    contact_email = serializers.EmailField(max_length=254)
    contact_phone = serializers.CharField(max_length=40, required=False, allow_blank=True, default="")
    contact_address = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    service_type = serializers.ChoiceField(choices=ServiceType.choices)
    description = serializers.CharField(max_length=5000, required=False, allow_blank=True, default="")

    def validate_contact_name(self, value: str) -> str:
        cleaned = (value or "").strip()
        if not cleaned:
            raise serializers.ValidationError("Name cannot be empty.")
        return cleaned

    def validate_contact_email(self, value: str) -> str:
        return value.strip().lower()


class QuotePriceSerializer(serializers.Serializer):
    amount_cents = serializers.IntegerField(min_value=1)
    valid_until = serializers.DateTimeField(required=False, allow_null=True, default=None)
    quote_notes = serializers.CharField(required=False, allow_blank=True, default="")
    timeline = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    terms = serializers.CharField(required=False, allow_blank=True, default="")


class QuoteSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source="public_id", read_only=True)
    status = serializers.CharField(source="effective_status", read_only=True)
    service_name = serializers.CharField(source="service_label", read_only=True)

    class Meta:
        model = Quote
        fields = (
            "id",
            "customer_id",
            "contact_name",
            "contact_email",
            "contact_phone",
            "contact_address",
            "service_type",
            "service_name",
            "description",
            "status",
            "quoted_amount_cents",
            "quote_notes",
            "timeline",
            "terms",
            "valid_until",
            "quoted_at",
            "accepted_at",
            "declined_at",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class QuoteReceiptSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source="public_id", read_only=True)
    service_name = serializers.CharField(source="service_label", read_only=True)

    class Meta:
        model = Quote
        fields = ("id", "service_type", "service_name", "status", "created_at")
        read_only_fields = fields


class AcceptanceTokenSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=128, trim_whitespace=True)


class QuoteDetailsSerializer(serializers.Serializer):
    quote_id = serializers.CharField()
    contact_name = serializers.CharField()
    service_type = serializers.CharField()
    service_name = serializers.CharField()
    description = serializers.CharField()
    amount_cents = serializers.IntegerField()
    deposit_amount_cents = serializers.IntegerField()
    deposit_required = serializers.BooleanField()
    quote_notes = serializers.CharField()
    timeline = serializers.CharField()
    terms = serializers.CharField()
    valid_until = serializers.DateTimeField(allow_null=True)
    expires_at = serializers.DateTimeField()


class QuoteListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Quote.Status.choices, required=False)
    service_type = serializers.ChoiceField(choices=ServiceType.choices, required=False)


class CustomerQuoteSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source="public_id", read_only=True)
    status = serializers.CharField(source="effective_status", read_only=True)
    service_name = serializers.CharField(source="service_label", read_only=True)
    project_id = serializers.SerializerMethodField()

    class Meta:
        model = Quote
        fields = (
            "id",
            "service_type",
            "service_name",
            "description",
            "status",
            "quoted_amount_cents",
            "timeline",
            "valid_until",
            "quoted_at",
            "accepted_at",
            "created_at",
            "project_id",
        )
        read_only_fields = fields

    def get_project_id(self, obj: Quote) -> str | None:
        project = getattr(obj, "project", None)
        return str(project.public_id) if project is not None else None
