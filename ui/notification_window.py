import customtkinter as ctk
from models.notification import PendingNotification
from services.notification_service import NotificationService
from utils.constants import APP_NAME

CATEGORY_COLORS = {
    "budget":       "#F44336",
    "subscription": "#2196F3",
    "daily":        "#4CAF50",
}

CATEGORY_ICONS = {
    "budget":       "⚠",
    "subscription": "🔁",
    "daily":        "✎",
}


class NotificationWindow(ctk.CTk):
    """Lists delivered notifications with per-row and dismiss-all buttons."""

    def __init__(self, notifications: list[PendingNotification], notification_service: NotificationService):
        super().__init__()
        self._service = notification_service
        self._notifications = list(notifications)

        self.title(f"{APP_NAME} - Notifications")
        self.geometry("520x400")
        self.resizable(False, True)
        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(1, weight=1)

        ctk.CTkLabel(
            self,
            text="Notifications" if self._notifications else "No new notifications",
            font=ctk.CTkFont(size=16, weight="bold"),
            pady=12,
        ).grid(row=0, column=0, sticky="ew", padx=16)

        self._scroll = ctk.CTkScrollableFrame(self)
        self._scroll.grid(row=1, column=0, sticky="nsew", padx=12, pady=(0, 8))
        self._scroll.grid_columnconfigure(0, weight=1)

        for i, notification in enumerate(self._notifications):
            self._add_row(self._scroll, notification, i)

        ctk.CTkButton(
            self, text="OK, Dismiss All", command=self._dismiss_all,
        ).grid(row=2, column=0, pady=(0, 16), padx=60, sticky="ew")

    def _add_row(self, parent, notification: PendingNotification, index: int):
        color = CATEGORY_COLORS.get(notification.category, "#888888")
        icon = CATEGORY_ICONS.get(notification.category, "·")

        row_frame = ctk.CTkFrame(parent, fg_color=("gray90", "gray20"), corner_radius=6)
        row_frame.grid(row=index, column=0, sticky="ew", pady=3, padx=2)
        row_frame.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(
            row_frame, text=icon, text_color=color,
            font=ctk.CTkFont(size=18), width=30,
        ).grid(row=0, column=0, rowspan=2, padx=(8, 4), pady=6)

        ctk.CTkLabel(
            row_frame, text=notification.title,
            font=ctk.CTkFont(size=13, weight="bold"),
            text_color=color, anchor="w",
        ).grid(row=0, column=1, sticky="ew", padx=(0, 4), pady=(6, 0))

        ctk.CTkLabel(
            row_frame, text=notification.body,
            font=ctk.CTkFont(size=11),
            text_color=("gray40", "gray70"),
            anchor="w", wraplength=360,
        ).grid(row=1, column=1, sticky="ew", padx=(0, 4), pady=(0, 6))

        ctk.CTkButton(
            row_frame, text="✕", width=28, height=28,
            fg_color="transparent",
            text_color=("gray10", "gray90"),
            hover_color=("gray80", "gray30"),
            command=lambda n=notification, f=row_frame: self._dismiss_one(n, f),
        ).grid(row=0, column=2, rowspan=2, padx=(4, 8), pady=6)

    def _dismiss_one(self, notification: PendingNotification, row_frame: ctk.CTkFrame):
        self._service.cancel(notification.id)
        if notification in self._notifications:
            self._notifications.remove(notification)
        row_frame.destroy()

    def _dismiss_all(self):
        self._service.clear_delivered()
        self.destroy()
