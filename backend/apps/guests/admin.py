from django.contrib import admin
from .models import Guest


@admin.register(Guest)
class GuestAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'email', 'phone', 'business', 'marketing_opt_in', 'created_at')
    list_filter = ('marketing_opt_in', 'created_at')
    search_fields = ('first_name', 'last_name', 'email', 'business__name')
    readonly_fields = ('created_at', 'updated_at')

    fieldsets = (
        ('Guest Information', {
            'fields': ('business', 'first_name', 'last_name', 'email', 'phone', 'zip_code')
        }),
        ('Marketing', {
            'fields': ('marketing_opt_in',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
