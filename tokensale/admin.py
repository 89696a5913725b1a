from django.contrib import admin
from django.utils.html import format_html

from .models import SaleParticipant, SalePurchase, SaleTier, TokenSale


class SaleTierInline(admin.TabularInline):
    model = SaleTier
    extra = 0
    fields = ['index', 'cap', 'rate', 'bonus_pct']


@admin.register(TokenSale)
class TokenSaleAdmin(admin.ModelAdmin):
    list_display = [
        'name',
        'current_round',
        'paused_colored',
        'sold_tokens',
        'progress_bar',
        'wei_raised',
        'locked_tokens',
        'start_time',
        'end_time',
    ]
    list_filter = ['paused', 'created_at']
    search_fields = ['name', 'owner', 'wallet']
    inlines = [SaleTierInline]
    readonly_fields = [
        'sold_tokens',
        'wei_raised',
        'withdrawn_wei',
        'unsold_tokens',
        'locked_tokens',
        'distributed_tokens',
        'current_round',
        'current_round_start',
        'created_at',
        'updated_at',
    ]

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'owner', 'wallet', 'paused')
        }),
        ('Schedule', {
            'fields': ('start_time', 'end_time', 'locked_till', 'min_purchase')
        }),
        ('Totals', {
            'fields': (
                'current_round',
                'current_round_start',
                'sold_tokens',
                'wei_raised',
                'withdrawn_wei',
                'unsold_tokens',
                'locked_tokens',
                'distributed_tokens',
            )
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    def paused_colored(self, obj):
        color, label = ('#dc3545', 'Paused') if obj.paused else ('#28a745', 'Running')
        return format_html('<span style="color: {}; font-weight: bold;">{}</span>', color, label)
    paused_colored.short_description = 'Status'

    def progress_bar(self, obj):
        last = obj.tiers.order_by("-index").first()
        maximum = int(last.cap) if last else 0
        percentage = min(float(obj.sold_tokens) * 100 / maximum, 100) if maximum else 0
        return format_html(
            '<div style="width: 100px; background: #eee;">'
            '<div style="width: {}px; background: #17a2b8; height: 10px;"></div></div> {}%',
            int(percentage),
            f"{percentage:.1f}"
        )
    progress_bar.short_description = 'Sold'


@admin.register(SaleParticipant)
class SaleParticipantAdmin(admin.ModelAdmin):
    list_display = ['address', 'sale', 'paid', 'tokens_bought', 'bonus_tokens', 'locked', 'distributed']
    list_filter = ['sale']
    search_fields = ['address']
    readonly_fields = ['paid', 'tokens_bought', 'bonus_tokens', 'locked', 'distributed', 'created_at', 'updated_at']


@admin.register(SalePurchase)
class SalePurchaseAdmin(admin.ModelAdmin):
    list_display = [
        'participant',
        'sale',
        'paid_amount',
        'tokens',
        'bonus_tokens',
        'refund_amount',
        'round_before',
        'round_after',
        'created_at',
    ]
    list_filter = ['sale', 'round_after']
    search_fields = ['participant__address']
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
