from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Business, AnalyticsTracking


class MemberInline(admin.TabularInline):
    model = User
    fields = ('email', 'first_name', 'last_name', 'role', 'is_active')
    readonly_fields = ('email',)
    extra = 0
    show_change_link = True


class AnalyticsTrackingInline(admin.TabularInline):
    model = AnalyticsTracking
    fields = ('platform', 'tracking_id', 'is_enabled', 'environment')
    extra = 0


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    inlines = (MemberInline, AnalyticsTrackingInline)
    list_display = ('name', 'slug', 'email', 'timezone_name', 'member_count', 'is_active', 'created_at')
    list_filter = ('is_active', 'timezone_name', 'created_at')
    search_fields = ('name', 'slug', 'email')
    readonly_fields = ('created_at', 'updated_at')

    fieldsets = (
        ('Business Information', {
            'fields': ('name', 'slug', 'timezone_name', 'is_active')
        }),
        ('Contact', {
            'fields': ('email', 'phone', 'website')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def member_count(self, obj):
        return obj.members.count()
    member_count.short_description = 'Members'


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('email', 'first_name', 'last_name', 'business', 'role', 'is_active', 'last_login', 'date_joined')
    list_filter = ('role', 'is_active', 'is_staff', 'date_joined')
    search_fields = ('email', 'first_name', 'last_name', 'business__name')
    ordering = ('-date_joined',)
    autocomplete_fields = ('business',)

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Personal info', {'fields': ('first_name', 'last_name')}),
        ('Business', {'fields': ('business', 'role')}),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',)
        }),
        ('Important dates', {
            'fields': ('last_login', 'date_joined'),
            'classes': ('collapse',)
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'first_name', 'last_name', 'business', 'role', 'password1', 'password2'),
        }),
    )

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('business')


@admin.register(AnalyticsTracking)
class AnalyticsTrackingAdmin(admin.ModelAdmin):
    list_display = ('business', 'platform', 'tracking_id', 'is_enabled', 'environment', 'updated_at')
    list_filter = ('platform', 'is_enabled', 'environment')
    search_fields = ('business__name', 'tracking_id')
    readonly_fields = ('created_at', 'updated_at')
