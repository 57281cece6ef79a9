from django.contrib import admin
from .models import Experience, Event, Session, AddOn, EventAddOn


class EventInline(admin.TabularInline):
    model = Event
    fields = ('name', 'slug', 'start_date', 'end_date', 'is_active')
    readonly_fields = ('slug',)
    extra = 0
    show_change_link = True


class SessionInline(admin.TabularInline):
    model = Session
    fields = ('start_time', 'end_time', 'max_capacity', 'current_count')
    readonly_fields = ('current_count',)
    extra = 0


class EventAddOnInline(admin.TabularInline):
    model = EventAddOn
    extra = 0
    autocomplete_fields = ('add_on',)


@admin.register(Experience)
class ExperienceAdmin(admin.ModelAdmin):
    inlines = (EventInline,)
    list_display = ('name', 'business', 'base_price', 'duration', 'max_capacity', 'sort_order', 'is_active')
    list_filter = ('is_active', 'created_at')
    search_fields = ('name', 'slug', 'business__name')
    readonly_fields = ('slug', 'created_at', 'updated_at')

    fieldsets = (
        ('Experience Information', {
            'fields': ('business', 'name', 'slug', 'description')
        }),
        ('Pricing & Capacity', {
            'fields': ('base_price', 'duration', 'max_capacity')
        }),
        ('Display', {
            'fields': ('is_active', 'sort_order')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    inlines = (SessionInline, EventAddOnInline)
    list_display = ('name', 'experience', 'start_date', 'end_date', 'session_count', 'is_active')
    list_filter = ('is_active', 'start_date')
    search_fields = ('name', 'slug', 'experience__name', 'experience__business__name')
    readonly_fields = ('created_at', 'updated_at')

    fieldsets = (
        ('Event Information', {
            'fields': ('experience', 'name', 'slug', 'description', 'is_active')
        }),
        ('Dates', {
            'fields': ('start_date', 'end_date')
        }),
        ('Overrides', {
            'fields': ('base_price', 'max_capacity'),
            'classes': ('collapse',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def session_count(self, obj):
        return obj.sessions.count()
    session_count.short_description = 'Sessions'


@admin.register(Session)
class SessionAdmin(admin.ModelAdmin):
    list_display = ('event', 'start_time', 'end_time', 'max_capacity', 'current_count')
    list_filter = ('start_time',)
    search_fields = ('event__name', 'event__experience__name')
    readonly_fields = ('current_count', 'created_at', 'updated_at')
    date_hierarchy = 'start_time'


@admin.register(AddOn)
class AddOnAdmin(admin.ModelAdmin):
    list_display = ('name', 'business', 'price', 'sort_order', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('name', 'business__name')
    readonly_fields = ('created_at', 'updated_at')
