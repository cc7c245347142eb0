from django.contrib import admin

from .models import Tenant


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug', 'default_currency', 'is_active', 'created_at')
    list_filter = ('is_active', 'default_currency')
    search_fields = ('name', 'slug')
    readonly_fields = ('id', 'created_at', 'updated_at')
