from django.contrib import admin
from django.urls import include, path

from apps.corecode.views_auth import login_view

urlpatterns = [
    path("admin/", admin.site.urls),
    path("login/", login_view, name="login"),
    path("finance/", include("apps.finance.urls")),
    path("result/", include("apps.result.urls")),
    path("parent/", include("apps.parent.urls")),
]
