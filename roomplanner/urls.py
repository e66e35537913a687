from django.urls import path

from . import views

app_name = "roomplanner"

urlpatterns = [
    path("api/workflow/", views.WorkflowAPI.as_view(), name="workflow"),
    path("api/optimize/", views.OptimizeAPI.as_view(), name="optimize"),
    path("api/validate/", views.ValidateAPI.as_view(), name="validate"),
    path("api/fire-safety/", views.FireSafetyAPI.as_view(), name="fire_safety"),
    path("api/reorganize/", views.ReorganizeAPI.as_view(), name="reorganize"),
    path("api/feedback/", views.FeedbackAPI.as_view(), name="feedback"),
    path("api/preview/", views.PreviewAPI.as_view(), name="preview"),
    path("api/plans/", views.PlanUploadAPI.as_view(), name="plans"),
]
