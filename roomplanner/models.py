from django.db import models


class RoomPlan(models.Model):
    """
    Stores an uploaded DXF room plan.
    """

    name = models.CharField(max_length=255, blank=True)
    dxf_file = models.FileField(upload_to="plans/")
    room_index = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name or f"Plan {self.pk}"

    @property
    def room_id(self) -> str:
        return f"plan-{self.pk}"


class WorkflowRun(models.Model):
    """
    Stores one workflow execution with its progress log and JSON result.
    """

    STATUS_RUNNING = "RUNNING"
    STATUS_DONE = "DONE"
    STATUS_FAILED = "FAILED"

    STATUS_CHOICES = [
        (STATUS_RUNNING, "Running"),
        (STATUS_DONE, "Done"),
        (STATUS_FAILED, "Failed"),
    ]

    TYPE_CHOICES = [
        ("space_optimization", "Space optimization"),
        ("layout_generation", "Layout generation"),
        ("room_analysis", "Room analysis"),
        ("reorganization", "Reorganization"),
        ("ai_assistance", "AI assistance"),
    ]

    plan = models.ForeignKey(
        RoomPlan,
        on_delete=models.SET_NULL,
        related_name="workflow_runs",
        blank=True,
        null=True,
    )
    workflow_type = models.CharField(max_length=32, choices=TYPE_CHOICES)
    room_id = models.CharField(max_length=255)
    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=STATUS_RUNNING
    )
    log = models.TextField(blank=True)
    result = models.JSONField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.workflow_type} for {self.room_id}"
