from django.urls import path
from .views import certificate_pdf

app_name = "certificates"

urlpatterns = [
    path("<str:certificate_id>/pdf/", certificate_pdf, name="pdf"),
]
