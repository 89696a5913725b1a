"""config URL Configuration"""
from django.contrib import admin
from django.urls import path
from django.views.decorators.csrf import csrf_exempt
from graphene_django.views import GraphQLView
from django.conf import settings

admin.site.site_header = "Token Sale Admin"
admin.site.site_title = "Token Sale Admin Portal"
admin.site.index_title = "Token Sale Administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('graphql/', csrf_exempt(GraphQLView.as_view(graphiql=settings.DEBUG))),
]
