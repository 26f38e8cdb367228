from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    # JSON endpoints of the bookkeeping core
    path("api/ledger/", include("ledger_core.urls")),
]
