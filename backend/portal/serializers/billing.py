from __future__ import annotations

from rest_framework import serializers

from ..models import Project


class ProjectSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source="public_id", read_only=True)
    quote_id = serializers.UUIDField(source="quote.public_id", read_only=True)
    service_name = serializers.CharField(source="service_label", read_only=True)
    balance_amount_cents = serializers.IntegerField(read_only=True)

    class Meta:
        model = Project
        fields = (
            "id",
            "quote_id",
            "service_type",
            "service_name",
            "description",
            "total_amount_cents",
            "deposit_amount_cents",
            "balance_amount_cents",
            "deposit_required",
            "status",
            "scheduled_date",
            "deposit_paid",
            "balance_paid",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class ProjectUpdateSerializer(serializers.Serializer):
    scheduled_date = serializers.DateField(required=False, allow_null=True)
    status = serializers.ChoiceField(choices=Project.Status.choices, required=False)

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if not attrs:
            raise serializers.ValidationError("Provide scheduled_date or status.")
        return attrs


class InvoiceQuerySerializer(serializers.Serializer):
    project_id = serializers.UUIDField(required=False)
    email = serializers.EmailField(required=False)

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if bool(attrs.get("project_id")) == bool(attrs.get("email")):
            raise serializers.ValidationError("Provide exactly one of project_id or email.")
        if attrs.get("email"):
            attrs["email"] = attrs["email"].strip().lower()
        return attrs


class PaymentSessionRequestSerializer(serializers.Serializer):
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    attempt_nonce = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")

    def validate_email(self, value: str) -> str:
        return (value or "").strip().lower()


class StaffProjectSerializer(ProjectSerializer):
    contact_name = serializers.CharField(source="quote.contact_name", read_only=True)
    contact_email = serializers.CharField(source="quote.contact_email", read_only=True)

    class Meta(ProjectSerializer.Meta):
        fields = ProjectSerializer.Meta.fields + ("contact_name", "contact_email")
        read_only_fields = fields


class ProjectListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Project.Status.choices, required=False)
