from django.contrib import admin

from .models import RoomPlan, WorkflowRun


@admin.register(RoomPlan)
class RoomPlanAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "dxf_file", "room_index", "created_at")
    search_fields = ("name",)
    ordering = ("-created_at",)


@admin.register(WorkflowRun)
class WorkflowRunAdmin(admin.ModelAdmin):
    list_display = ("id", "workflow_type", "room_id", "status", "created_at", "updated_at")
    list_filter = ("status", "workflow_type")
    ordering = ("-created_at",)
