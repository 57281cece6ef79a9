from rest_framework import serializers
from .models import Experience, Event, Session, AddOn, EventAddOn
from .utils import DAY_NAMES, generate_slug, parse_session_time


class SessionSerializer(serializers.ModelSerializer):
    event_id = serializers.UUIDField(source='event.id', read_only=True)
    effective_max_capacity = serializers.IntegerField(read_only=True)
    remaining_capacity = serializers.SerializerMethodField()
    booking_count = serializers.SerializerMethodField()

    class Meta:
        model = Session
        fields = [
            'id', 'event_id', 'start_time', 'end_time', 'max_capacity',
            'effective_max_capacity', 'current_count', 'remaining_capacity',
            'booking_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'current_count', 'created_at', 'updated_at']

    def get_remaining_capacity(self, obj):
        return obj.remaining_capacity()

    def get_booking_count(self, obj):
        if hasattr(obj, 'booking_count'):
            return obj.booking_count
        return obj.bookings.count()


class SessionWriteSerializer(serializers.ModelSerializer):
    event_id = serializers.UUIDField(write_only=True)

    class Meta:
        model = Session
        fields = ['event_id', 'start_time', 'end_time', 'max_capacity']

    def validate(self, attrs):
        start_time = attrs.get('start_time', getattr(self.instance, 'start_time', None))
        end_time = attrs.get('end_time', getattr(self.instance, 'end_time', None))
        if start_time and end_time and start_time >= end_time:
            raise serializers.ValidationError("End time must be after start time")
        return attrs


class ExperienceSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Experience
        fields = ['id', 'name', 'slug', 'duration', 'base_price', 'max_capacity']


class EventSerializer(serializers.ModelSerializer):
    experience = ExperienceSummarySerializer(read_only=True)
    effective_price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    sessions = SessionSerializer(many=True, read_only=True)
    session_count = serializers.SerializerMethodField()

    class Meta:
        model = Event
        fields = [
            'id', 'experience', 'name', 'slug', 'description', 'start_date',
            'end_date', 'is_active', 'base_price', 'effective_price',
            'max_capacity', 'sessions', 'session_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'slug', 'created_at', 'updated_at']

    def get_session_count(self, obj):
        return len(obj.sessions.all())


class SessionTimeSerializer(serializers.Serializer):
    id = serializers.CharField(required=False, allow_blank=True)
    time = serializers.CharField()

    def validate_time(self, value):
        try:
            parse_session_time(value)
        except ValueError:
            raise serializers.ValidationError("Invalid session time")
        return value


class EventWriteSerializer(serializers.ModelSerializer):
    """Create/update an event, optionally generating sessions from a weekly schedule."""
    experience_id = serializers.UUIDField(write_only=True)
    session_times = SessionTimeSerializer(many=True, write_only=True, required=False)
    selected_days = serializers.ListField(
        child=serializers.ChoiceField(choices=DAY_NAMES),
        write_only=True,
        required=False
    )

    class Meta:
        model = Event
        fields = [
            'experience_id', 'name', 'description', 'start_date', 'end_date',
            'is_active', 'base_price', 'max_capacity', 'session_times', 'selected_days'
        ]
        extra_kwargs = {
            'name': {'min_length': 1, 'max_length': 100},
        }

    def to_internal_value(self, data):
        # Day names arrive capitalised from some clients
        if hasattr(data, 'get') and isinstance(data.get('selected_days'), list):
            data = data.copy()
            data['selected_days'] = [str(day).lower() for day in data['selected_days']]
        return super().to_internal_value(data)

    def validate(self, attrs):
        start_date = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end_date = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start_date and end_date and start_date >= end_date:
            raise serializers.ValidationError("End date must be after start date")
        return attrs

    def pop_schedule(self):
        """Remove and return (session_times, selected_days) when both were supplied."""
        session_times = self.validated_data.pop('session_times', None)
        selected_days = self.validated_data.pop('selected_days', None)
        self.validated_data.pop('experience_id', None)
        if session_times and selected_days:
            return [item['time'] for item in session_times], selected_days
        return None


class ExperienceSerializer(serializers.ModelSerializer):
    events = EventSerializer(many=True, read_only=True)

    class Meta:
        model = Experience
        fields = [
            'id', 'name', 'slug', 'description', 'base_price', 'duration',
            'max_capacity', 'is_active', 'sort_order', 'events',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'slug', 'created_at', 'updated_at']
        extra_kwargs = {
            'name': {'min_length': 1, 'max_length': 100},
        }

    def validate_name(self, value):
        value = value.strip()
        slug = generate_slug(value)
        if not slug:
            raise serializers.ValidationError("Name must contain letters or numbers")

        business = self.context['request'].user.business
        existing = Experience.objects.filter(business=business, slug=slug)
        if self.instance:
            existing = existing.exclude(id=self.instance.id)
        if existing.exists():
            raise serializers.ValidationError("An experience with this name already exists")
        return value


class AddOnSerializer(serializers.ModelSerializer):
    booking_item_count = serializers.IntegerField(read_only=True, default=0)
    event_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = AddOn
        fields = [
            'id', 'name', 'description', 'price', 'is_active', 'sort_order',
            'booking_item_count', 'event_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']
        extra_kwargs = {
            'name': {'min_length': 1, 'max_length': 100},
        }

    def validate_name(self, value):
        value = value.strip()
        business = self.context['request'].user.business
        existing = AddOn.objects.filter(business=business, name=value)
        if self.instance:
            existing = existing.exclude(id=self.instance.id)
        if existing.exists():
            raise serializers.ValidationError("An add-on with this name already exists")
        return value


class EventAddOnSerializer(serializers.ModelSerializer):
    add_on = AddOnSerializer(read_only=True)

    class Meta:
        model = EventAddOn
        fields = ['id', 'add_on', 'created_at']


class EventAddOnCreateSerializer(serializers.Serializer):
    add_on_id = serializers.UUIDField()
