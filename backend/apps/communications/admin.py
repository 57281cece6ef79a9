from django.contrib import admin
from .models import BookingCommunication


@admin.register(BookingCommunication)
class BookingCommunicationAdmin(admin.ModelAdmin):
    list_display = ('booking', 'type', 'direction', 'status', 'to_address', 'sent_at', 'received_at', 'created_at')
    list_filter = ('type', 'direction', 'status', 'channel', 'created_at')
    search_fields = ('booking__id', 'subject', 'from_address', 'to_address', 'message_id')
    readonly_fields = ('sent_at', 'delivered_at', 'received_at', 'message_id', 'created_at', 'updated_at')
    raw_id_fields = ('booking',)
    date_hierarchy = 'created_at'

    fieldsets = (
        ('Communication', {
            'fields': ('booking', 'type', 'channel', 'direction', 'status')
        }),
        ('Content', {
            'fields': ('subject', 'content', 'from_address', 'to_address')
        }),
        ('Delivery', {
            'fields': ('message_id', 'sent_at', 'delivered_at', 'received_at', 'error_message'),
            'classes': ('collapse',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
