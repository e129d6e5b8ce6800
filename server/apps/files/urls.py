from django.urls import path

from server.apps.files import views

app_name = 'files'

urlpatterns = [
    path('upload/<str:filename>', views.upload, name='upload'),
    path('d/<str:filename>', views.download, name='download'),
]
