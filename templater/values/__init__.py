"""Value source loading."""
