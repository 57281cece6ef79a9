from django.contrib import admin
from .models import Booking, BookingItem, BookingAuditLog


class BookingItemInline(admin.TabularInline):
    model = BookingItem
    fields = ('item_type', 'add_on', 'quantity', 'unit_price', 'total_price')
    readonly_fields = ('item_type', 'add_on', 'quantity', 'unit_price', 'total_price')
    extra = 0
    can_delete = False


class BookingAuditLogInline(admin.TabularInline):
    model = BookingAuditLog
    fields = ('action', 'description', 'actor_type', 'actor_email', 'created_at')
    readonly_fields = ('action', 'description', 'actor_type', 'actor_email', 'created_at')
    extra = 0
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    inlines = (BookingItemInline, BookingAuditLogInline)
    list_display = ('reference', 'guest', 'session', 'quantity', 'total', 'status', 'source', 'checked_in', 'created_at')
    list_filter = ('status', 'source', 'checked_in', 'created_at')
    search_fields = ('id', 'guest__first_name', 'guest__last_name', 'guest__email', 'session__event__name')
    readonly_fields = ('id', 'total', 'check_in_time', 'created_at', 'updated_at')
    raw_id_fields = ('session', 'guest')
    date_hierarchy = 'created_at'

    fieldsets = (
        ('Booking Information', {
            'fields': ('id', 'session', 'guest', 'quantity', 'total', 'status', 'source')
        }),
        ('Check-in', {
            'fields': ('checked_in', 'check_in_time')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(BookingAuditLog)
class BookingAuditLogAdmin(admin.ModelAdmin):
    list_display = ('booking', 'action', 'actor_type', 'actor_email', 'created_at')
    list_filter = ('action', 'actor_type', 'created_at')
    search_fields = ('booking__id', 'description', 'actor_email')
    readonly_fields = ('created_at',)
    date_hierarchy = 'created_at'

    fieldsets = (
        ('Action Details', {
            'fields': ('booking', 'action', 'description')
        }),
        ('Actor Information', {
            'fields': ('actor_type', 'actor_email')
        }),
        ('Changes', {
            'fields': ('old_values', 'new_values'),
            'classes': ('collapse',)
        }),
        ('Additional Data', {
            'fields': ('metadata',),
            'classes': ('collapse',)
        }),
        ('Timestamp', {
            'fields': ('created_at',)
        }),
    )
