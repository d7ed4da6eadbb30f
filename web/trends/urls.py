from django.urls import path
from . import views
urlpatterns = [
    path("trends", views.trends, name="trends"),
    path("trends/analysis", views.trend_analysis, name="trend_analysis"),
]
