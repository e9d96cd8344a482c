from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API
    path('api/accounts/', include('accounts.urls')),
    path('api/lifelink/', include('api.urls')),
]
