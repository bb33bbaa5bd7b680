"""
Django Admin Configuration for Farm Housing Models
"""

from django.contrib import admin

from .models import Farm, Room, Worker
from .services import RoomOccupancySyncService


class RoomInline(admin.TabularInline):
    model = Room
    extra = 0
    fields = ('number', 'gender_restriction', 'total_capacity', 'current_occupancy')
    readonly_fields = ('current_occupancy',)


@admin.register(Farm)
class FarmAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']
    filter_horizontal = ['admins']
    inlines = [RoomInline]

    actions = ['sync_occupancy']

    def sync_occupancy(self, request, queryset):
        updated = 0
        for farm in queryset:
            updated += RoomOccupancySyncService(farm.id).sync()['rooms_updated']
        self.message_user(request, f"Recomputed occupancy for {queryset.count()} farm(s), {updated} room(s) corrected")
    sync_occupancy.short_description = "Recompute room occupancy from workers"


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = [
        'number', 'farm', 'gender_restriction', 'total_capacity',
        'current_occupancy', 'updated_at'
    ]
    list_filter = ['gender_restriction', 'farm']
    search_fields = ['number', 'farm__name']
    readonly_fields = ['current_occupancy', 'occupant_ids', 'created_at', 'updated_at']


@admin.register(Worker)
class WorkerAdmin(admin.ModelAdmin):
    list_display = [
        'name', 'first_name', 'national_id', 'farm', 'sex', 'age',
        'room_number', 'status', 'entry_date', 'exit_date'
    ]
    list_filter = ['status', 'sex', 'farm', 'sector']
    search_fields = ['name', 'first_name', 'national_id']
    date_hierarchy = 'entry_date'
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        ('Identity', {
            'fields': ('farm', 'name', 'first_name', 'national_id', 'phone', 'sex', 'age', 'year_of_birth')
        }),
        ('Assignment', {
            'fields': ('room_number', 'sector')
        }),
        ('Lifecycle', {
            'fields': ('status', 'entry_date', 'exit_date', 'exit_reason')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def has_delete_permission(self, request, obj=None):
        return False
