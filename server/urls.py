"""Root URL configuration of the file server."""

from django.urls import include, path

urlpatterns = [
    path('', include('server.apps.files.urls')),
]
