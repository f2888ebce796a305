from django.urls import path

from . import views

app_name = 'onlinetester'

urlpatterns = [
    path('', views.HomeView.as_view(), name='home'),
    path('api/execute', views.ExecuteApiView.as_view(), name='api-execute'),
]
